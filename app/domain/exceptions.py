from __future__ import annotations


class DomainError(Exception):
    """Base para erros de dominio."""

    def __init__(self, message: str = "", *, user_id: str | None = None):
        super().__init__(message)
        self.user_id = user_id


class ValidationError(DomainError):
    """Entrada ausente ou malformada."""


class ConflictError(DomainError):
    """Violacao de unicidade."""


class UnauthorizedError(DomainError):
    """Credencial ausente, invalida, expirada ou revogada."""


class InvalidOtpError(UnauthorizedError):
    """Codigo OTP incorreto."""


class OtpExpiredError(UnauthorizedError):
    """Codigo OTP expirado."""


class InvalidTokenError(UnauthorizedError):
    """Token assinado invalido ou expirado."""


class ForbiddenError(DomainError):
    """Usuario sem papel ativo ou sem o papel solicitado."""


class NotFoundError(DomainError):
    """Conta inexistente."""


class RateLimitedError(DomainError):
    """Limite de tentativas de OTP esgotado."""


class UpstreamError(DomainError):
    """Falha do provedor de OTP."""


class ConfigurationError(UpstreamError):
    """Configuracao obrigatoria ausente."""


class InternalError(DomainError):
    """Falha de persistencia ou inesperada."""
