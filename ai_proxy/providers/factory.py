"""Factory for provider store backends."""

from ai_proxy.config.settings import get_settings
from ai_proxy.providers.store import JSONProviderStore, ProviderStore

_store: ProviderStore | None = None


def get_provider_store() -> ProviderStore:
    """Get the provider store singleton.

    Raises ValueError for an unknown backend.
    """
    global _store
    if _store is not None:
        return _store

    settings = get_settings()
    backend = settings.provider_store_backend

    if backend == "json":
        # A missing file is an empty store: every lookup is ProviderNotFound
        _store = JSONProviderStore(settings.provider_config_path)
    elif backend == "dynamodb":
        # Lazy import to avoid boto3 dependency when not needed
        from ai_proxy.providers.dynamodb_store import DynamoDBProviderStore
        _store = DynamoDBProviderStore(
            projects_table=settings.dynamodb_projects_table,
            providers_table=settings.dynamodb_providers_table,
            region=settings.aws_region,
        )
    else:
        raise ValueError(f"Unknown provider store backend: {backend}")

    return _store
