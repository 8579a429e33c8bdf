from typing import Any, Dict, Iterable, Optional

from fastapi import status


class APIException(Exception):
    """
    Base class for errors that reach a client.

    Subclasses set ``status_code``, ``code`` and ``default_detail``; every
    instance renders as ``{"error": {code, message, status_code, context}}``.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "internal_error"
    default_detail: str = "An unexpected error occurred"

    def __init__(
        self,
        detail: Optional[str] = None,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        self.detail = detail or self.default_detail
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.context: Dict[str, Any] = dict(context or {})
        super().__init__(self.detail)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": {
                "code": self.code,
                "message": self.detail,
                "status_code": self.status_code,
                "context": self.context,
            }
        }


class IntegrationException(APIException):
    """A partner API (Yampi or Shopify) could not be used."""

    status_code = status.HTTP_502_BAD_GATEWAY
    code = "integration_error"
    default_detail = "External API integration error"

    def __init__(
        self,
        detail: Optional[str] = None,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        super().__init__(detail=detail, code=code, status_code=status_code, context=context)
        self.original_exception = original_exception
        if original_exception is not None:
            self.context.setdefault("original_error", str(original_exception))


class UpstreamFailureError(IntegrationException):
    """Yampi answered with a non-success status."""

    code = "upstream_failure"

    def __init__(self, upstream_status: int, body: str):
        super().__init__(
            detail=f"Yampi {upstream_status}: {body}",
            context={"status": upstream_status, "body": body},
        )
        self.upstream_status = upstream_status
        self.body = body


class HydrationError(IntegrationException):
    """A catalog scan stopped before reaching its last page."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "hydration_failure"
    default_detail = "Catalog hydration failed"

    def __init__(
        self,
        detail: Optional[str] = None,
        page: Optional[int] = None,
        original_exception: Optional[Exception] = None
    ):
        super().__init__(
            detail=detail,
            context={"page": page} if page is not None else None,
            original_exception=original_exception,
        )
        self.page = page


class InvalidInputError(APIException):
    """Quote request parameters are missing or unusable."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_input"
    default_detail = "Invalid input"

    def __init__(
        self,
        detail: Optional[str] = None,
        code: Optional[str] = None,
        field: Optional[str] = None,
        value: Any = None
    ):
        context: Dict[str, Any] = {}
        if field:
            context["field"] = field
        if value is not None:
            context["value"] = value
        super().__init__(detail=detail, code=code, context=context)
        self.field = field
        self.value = value


class AuthenticationError(APIException):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "authentication_error"
    default_detail = "Authentication failed"


class InvalidSignatureError(AuthenticationError):
    """An App Proxy request whose signature does not match the shared secret."""

    code = "invalid_signature"
    default_detail = "Invalid proxy signature"


class AuthorizationError(APIException):
    status_code = status.HTTP_403_FORBIDDEN
    code = "authorization_error"
    default_detail = "Not authorized to perform this action"


class ConfigurationMissingError(RuntimeError):
    """Raised at startup when a required credential is not configured."""

    def __init__(self, names: Iterable[str]):
        self.names = list(names)
        super().__init__(f"Missing required configuration: {', '.join(self.names)}")
