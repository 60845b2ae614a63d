"""Failure taxonomy for the forwarding pipeline.

Each error carries the status code and the body the caller is allowed to
see. Internal detail stays on the exception (``detail``) and goes to the log.
Upstream HTTP error statuses are not represented here: they are relayed.
"""

GENERIC_ERROR_MESSAGE = "An unexpected error occurred in the proxy"
FORBIDDEN_HOST_MESSAGE = "Security Violation: Access to the requested host is restricted."
QUOTA_EXCEEDED_MESSAGE = "You have exceeded your AI tokens limit for this project."
QUOTA_EXCEEDED_CODE = "ai_tokens_limit_exceeded"


class ProxyError(Exception):
    status_code: int = 500

    def __init__(self, detail: str = ""):
        super().__init__(detail or type(self).__name__)
        self.detail = detail

    @property
    def body(self) -> dict:
        return {"message": GENERIC_ERROR_MESSAGE}


class ProviderNotFound(ProxyError):
    status_code = 404

    def __init__(self, provider: str, detail: str = ""):
        super().__init__(detail or f"provider {provider!r} is not configured")
        self.provider = provider

    @property
    def body(self) -> dict:
        return {"message": f"AI provider '{self.provider}' is not configured"}


class QuotaExceeded(ProxyError):
    status_code = 402

    @property
    def body(self) -> dict:
        # Mirrors the OpenAI error envelope so SDK clients can parse it
        return make_openai_error(QUOTA_EXCEEDED_MESSAGE, QUOTA_EXCEEDED_CODE, {})


class InvalidTargetUrl(ProxyError):
    status_code = 400

    @property
    def body(self) -> dict:
        return {"message": "Invalid target URL"}


class AuthorityInjection(InvalidTargetUrl):
    """The URL tries to replace the provider host with another authority."""


class ForbiddenHost(ProxyError):
    status_code = 403

    def __init__(self, hostname: str):
        super().__init__(f"host {hostname!r} is not allowlisted")
        self.hostname = hostname

    @property
    def body(self) -> dict:
        return {"error": FORBIDDEN_HOST_MESSAGE}


class UpstreamUnavailable(ProxyError):
    """Upstream unreachable or timed out."""


class UpstreamError(ProxyError):
    """Transport-level failure or a redirect from the upstream."""


class QuotaStoreUnavailable(ProxyError):
    status_code = 503

    @property
    def body(self) -> dict:
        return {"message": "AI usage limits are temporarily unavailable"}


def make_openai_error(message: str, code: str, param: dict) -> dict:
    return {"error": {"message": message, "code": code, "param": param}}
