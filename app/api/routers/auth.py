from __future__ import annotations

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse

from app.api.auth import bearer_token, client_ip
from app.api.deps import (
    get_auth_responder,
    get_authenticate_principal_use_case,
    get_login_use_case,
    get_logout_session_use_case,
    get_refresh_session_use_case,
    get_send_otp_use_case,
    get_signup_use_case,
    get_switch_role_use_case,
    get_verify_otp_use_case,
)
from app.api.responses import ApiResult, AuthResponder
from app.api.schemas.auth import (
    LoginRequest,
    SendOtpRequest,
    SignupRequest,
    SwitchRoleRequest,
    VerifyOtpRequest,
)
from app.application.dto.auth import (
    ClientContext,
    LoginInput,
    LogoutInput,
    RefreshAccessTokenInput,
    SendOtpInput,
    SignupInput,
    SwitchRoleInput,
    VerifyOtpInput,
)
from app.application.use_cases.authenticate_principal import AuthenticatePrincipalUseCase
from app.application.use_cases.login_otp import LoginOtpUseCase
from app.application.use_cases.logout_session import LogoutSessionUseCase
from app.application.use_cases.refresh_session import RefreshSessionUseCase
from app.application.use_cases.send_otp import SendOtpUseCase
from app.application.use_cases.signup_user import SignupUserUseCase
from app.application.use_cases.switch_role import SwitchRoleUseCase
from app.application.use_cases.verify_otp import VerifyOtpUseCase


router = APIRouter(prefix="/api/v1/auth")


def _client_context(request: Request, device_id: str | None) -> ClientContext:
    return ClientContext(
        user_agent=request.headers.get("user-agent"),
        ip=client_ip(request),
        device_id=device_id or None,
    )


@router.post("/send-otp")
def send_otp(
    req: SendOtpRequest,
    request: Request,
    responder: AuthResponder = Depends(get_auth_responder),
    use_case: SendOtpUseCase = Depends(get_send_otp_use_case),
) -> JSONResponse:
    def _action() -> ApiResult:
        challenge = use_case.execute(SendOtpInput(mobile_number=req.mobile_number))
        return ApiResult(
            message="OTP sent successfully",
            data={
                "verificationId": challenge.verification_id,
                "timeout": challenge.timeout_seconds,
            },
        )

    return responder.run(request=request, request_body=req.log_payload(), action=_action)


@router.post("/verify-otp")
def verify_otp(
    req: VerifyOtpRequest,
    request: Request,
    responder: AuthResponder = Depends(get_auth_responder),
    use_case: VerifyOtpUseCase = Depends(get_verify_otp_use_case),
) -> JSONResponse:
    def _action() -> ApiResult:
        verified = use_case.execute(VerifyOtpInput(verification_id=req.verification_id, otp=req.otp))
        return ApiResult(message="OTP verified successfully", data={"verified": verified})

    return responder.run(request=request, request_body=req.log_payload(), action=_action)


@router.post("/signup", status_code=201)
def signup(
    req: SignupRequest,
    request: Request,
    responder: AuthResponder = Depends(get_auth_responder),
    use_case: SignupUserUseCase = Depends(get_signup_use_case),
) -> JSONResponse:
    def _action() -> ApiResult:
        output = use_case.execute(
            SignupInput(
                mobile_number=req.mobile_number,
                email=req.email,
                first_name=req.first_name,
                last_name=req.last_name,
                otp=req.otp,
                verification_id=req.verification_id,
                registration_number=req.registration_number,
                role_name=req.role_name,
                context=_client_context(request, req.device_id),
            )
        )
        return ApiResult(
            message="User created successfully",
            data={
                "userId": output.user_id,
                "role": output.role,
                "accessToken": output.access_token,
                "refreshToken": output.refresh_token,
            },
            user_id=output.user_id,
            status_code=201,
        )

    return responder.run(request=request, request_body=req.log_payload(), action=_action)


@router.post("/login")
def login(
    req: LoginRequest,
    request: Request,
    responder: AuthResponder = Depends(get_auth_responder),
    use_case: LoginOtpUseCase = Depends(get_login_use_case),
) -> JSONResponse:
    def _action() -> ApiResult:
        output = use_case.execute(
            LoginInput(
                mobile_number=req.mobile_number,
                otp=req.otp,
                verification_id=req.verification_id,
                role_name=req.role_name,
                context=_client_context(request, req.device_id),
            )
        )
        return ApiResult(
            message="Login successful",
            data={
                "userId": output.user_id,
                "role": output.role,
                "roles": output.roles,
                "accessToken": output.access_token,
                "refreshToken": output.refresh_token,
            },
            user_id=output.user_id,
        )

    return responder.run(request=request, request_body=req.log_payload(), action=_action)


@router.post("/logout")
def logout(
    request: Request,
    authorization: str | None = Header(default=None),
    responder: AuthResponder = Depends(get_auth_responder),
    use_case: LogoutSessionUseCase = Depends(get_logout_session_use_case),
) -> JSONResponse:
    def _action() -> ApiResult:
        output = use_case.execute(LogoutInput(refresh_token=bearer_token(authorization)))
        return ApiResult(message="Logged out successfully", user_id=output.user_id)

    return responder.run(request=request, request_body=None, action=_action)


@router.get("/refresh-token")
def refresh_token(
    request: Request,
    authorization: str | None = Header(default=None),
    responder: AuthResponder = Depends(get_auth_responder),
    use_case: RefreshSessionUseCase = Depends(get_refresh_session_use_case),
) -> JSONResponse:
    def _action() -> ApiResult:
        output = use_case.execute(RefreshAccessTokenInput(refresh_token=bearer_token(authorization)))
        return ApiResult(
            message="Access token refreshed successfully",
            data={
                "userId": output.user_id,
                "role": output.role,
                "roles": output.roles,
                "accessToken": output.access_token,
            },
            user_id=output.user_id,
        )

    return responder.run(request=request, request_body=None, action=_action)


@router.post("/switch-role")
def switch_role(
    req: SwitchRoleRequest,
    request: Request,
    authorization: str | None = Header(default=None),
    responder: AuthResponder = Depends(get_auth_responder),
    authenticate: AuthenticatePrincipalUseCase = Depends(get_authenticate_principal_use_case),
    use_case: SwitchRoleUseCase = Depends(get_switch_role_use_case),
) -> JSONResponse:
    def _action() -> ApiResult:
        principal = authenticate.execute(access_token=bearer_token(authorization))
        output = use_case.execute(
            principal=principal,
            command=SwitchRoleInput(
                role_name=req.role_name,
                context=_client_context(request, req.device_id),
            ),
        )
        return ApiResult(
            message=f"Switched role to {output.role}",
            data={
                "previousRole": output.previous_role,
                "role": output.role,
                "accessToken": output.access_token,
                "refreshToken": output.refresh_token,
            },
            user_id=output.user_id,
        )

    return responder.run(request=request, request_body=req.log_payload(), action=_action)
