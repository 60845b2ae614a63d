"""DynamoDB-backed provider store with in-memory TTL cache."""

import asyncio
import time

from ai_proxy.providers.models import ProviderConfig
from ai_proxy.providers.store import ProviderStore


class DynamoDBProviderStore(ProviderStore):
    """Reads projects (key: project_id) and providers (key: platform_id + provider)."""

    CACHE_TTL = 300  # 5 minutes

    def __init__(self, projects_table: str, providers_table: str, region: str = "us-east-1"):
        self._projects_table_name = projects_table
        self._providers_table_name = providers_table
        self._region = region
        self._projects_table = None
        self._providers_table = None
        self._platform_cache: dict[str, tuple[str, float]] = {}
        self._provider_cache: dict[tuple[str, str], tuple[ProviderConfig, float]] = {}

    def _get_tables(self):
        """Lazy-init boto3 Table resources."""
        if self._projects_table is None or self._providers_table is None:
            import boto3

            dynamodb = boto3.resource("dynamodb", region_name=self._region)
            self._projects_table = dynamodb.Table(self._projects_table_name)
            self._providers_table = dynamodb.Table(self._providers_table_name)
        return self._projects_table, self._providers_table

    async def get_platform_id(self, project_id: str) -> str | None:
        cached = self._platform_cache.get(project_id)
        if cached is not None:
            platform_id, expires_at = cached
            if time.monotonic() < expires_at:
                return platform_id
            del self._platform_cache[project_id]

        platform_id = await asyncio.to_thread(self._get_platform_item, project_id)

        # Only cache hits, so a newly created project is visible right away
        if platform_id is not None:
            self._platform_cache[project_id] = (platform_id, time.monotonic() + self.CACHE_TTL)
        return platform_id

    async def get_provider_config(self, platform_id: str, provider: str) -> ProviderConfig | None:
        key = (platform_id, provider)
        cached = self._provider_cache.get(key)
        if cached is not None:
            config, expires_at = cached
            if time.monotonic() < expires_at:
                return config
            del self._provider_cache[key]

        config = await asyncio.to_thread(self._get_provider_item, platform_id, provider)
        if config is not None:
            self._provider_cache[key] = (config, time.monotonic() + self.CACHE_TTL)
        return config

    def _get_platform_item(self, project_id: str) -> str | None:
        projects, _ = self._get_tables()
        item = projects.get_item(Key={"project_id": project_id}).get("Item")
        if not item:
            return None
        return item["platform_id"]

    def _get_provider_item(self, platform_id: str, provider: str) -> ProviderConfig | None:
        _, providers = self._get_tables()
        item = providers.get_item(
            Key={"platform_id": platform_id, "provider": provider}
        ).get("Item")
        if not item:
            return None
        return ProviderConfig(
            provider=item["provider"],
            base_url=item["base_url"],
            default_headers=dict(item.get("default_headers", {})),
            platform_id=item["platform_id"],
        )
