from __future__ import annotations

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from app.api.deps import get_auth_responder
from app.api.responses import AuthResponder
from app.api.routers.auth import router as auth_router
from app.domain.exceptions import DomainError, ValidationError
from app.infrastructure.db.engine import Base, get_engine
from app.infrastructure.db.models import accounts as _accounts_models  # noqa: F401
from app.infrastructure.db.seeds.seed_roles import seed_roles
from app.shared.config import get_settings


settings = get_settings()
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    current = get_settings()
    if current.auto_create_schema and current.postgres_dsn:
        engine = get_engine(current.postgres_dsn)
        Base.metadata.create_all(engine)
        seed_roles(engine, client_roles=current.client_roles)
        logger.info("startup: schema_ready roles=%s", ",".join(current.client_roles))
    yield


app = FastAPI(title="Identity API", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(auth_router)


def _responder(request: Request) -> AuthResponder:
    factory = request.app.dependency_overrides.get(get_auth_responder, get_auth_responder)
    return factory()


def _validation_message(exc: RequestValidationError) -> str:
    missing = []
    for error in exc.errors():
        if error.get("type") != "missing":
            continue
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        if loc:
            missing.append(loc[-1])
    if missing:
        return f"Missing required fields: {', '.join(missing)}"
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    if field:
        return f"Invalid value for {field}."
    return "Invalid request."


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    body = exc.body if isinstance(exc.body, dict) else None

    def _reject():
        raise ValidationError(_validation_message(exc))

    return _responder(request).run(request=request, request_body=body, action=_reject)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    def _reraise():
        raise exc

    return _responder(request).run(request=request, request_body=None, action=_reraise)
