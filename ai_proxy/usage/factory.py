"""Factory for usage limiter backends."""

from ai_proxy.config.settings import get_settings
from ai_proxy.usage.limiter import InMemoryUsageLimiter, UsageLimiter

_limiter: UsageLimiter | None = None


def get_usage_limiter() -> UsageLimiter:
    """Get the usage limiter singleton. Raises ValueError for an unknown backend."""
    global _limiter
    if _limiter is not None:
        return _limiter

    settings = get_settings()
    backend = settings.usage_store_backend

    if backend == "memory":
        _limiter = InMemoryUsageLimiter(default_limit=settings.ai_usage_default_limit)
    elif backend == "dynamodb":
        from ai_proxy.usage.dynamodb_limiter import DynamoDBUsageLimiter
        _limiter = DynamoDBUsageLimiter(
            table_name=settings.dynamodb_usage_table,
            region=settings.aws_region,
            default_limit=settings.ai_usage_default_limit,
        )
    else:
        raise ValueError(f"Unknown usage store backend: {backend}")

    return _limiter
