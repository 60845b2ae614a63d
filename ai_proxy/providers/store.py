"""Provider store abstraction + JSON file implementation."""

import json
import os
from abc import ABC, abstractmethod

from ai_proxy.providers.models import ProviderConfig


class ProviderStore(ABC):
    """Abstract base for project and provider configuration lookups."""

    @abstractmethod
    async def get_platform_id(self, project_id: str) -> str | None:
        """Return the platform owning a project. None if the project is unknown."""
        ...

    @abstractmethod
    async def get_provider_config(self, platform_id: str, provider: str) -> ProviderConfig | None:
        """Look up a platform's provider configuration. None if not configured."""
        ...


class JSONProviderStore(ProviderStore):
    """File-backed provider store. Reloads on mtime change.

    File layout::

        {
          "projects": [{"project_id": "...", "platform_id": "..."}],
          "providers": [{"platform_id": "...", "provider": "openai",
                         "base_url": "https://api.openai.com",
                         "default_headers": {"Authorization": "Bearer sk-..."}}]
        }
    """

    def __init__(self, path: str):
        self._path = path
        self._projects: dict[str, str] = {}
        self._providers: dict[tuple[str, str], ProviderConfig] = {}
        self._last_mtime: float = 0.0
        self._load()

    def _load(self) -> None:
        """Load projects and providers from the JSON file."""
        try:
            mtime = os.path.getmtime(self._path)
        except OSError:
            self._projects = {}
            self._providers = {}
            return

        if mtime == self._last_mtime and (self._projects or self._providers):
            return

        with open(self._path, encoding="utf-8") as f:
            data = json.load(f)

        self._projects = {
            entry["project_id"]: entry["platform_id"] for entry in data.get("projects", [])
        }
        configs = [ProviderConfig(**entry) for entry in data.get("providers", [])]
        self._providers = {(c.platform_id, c.provider): c for c in configs}
        self._last_mtime = mtime

    async def get_platform_id(self, project_id: str) -> str | None:
        self._load()  # reload if file changed
        return self._projects.get(project_id)

    async def get_provider_config(self, platform_id: str, provider: str) -> ProviderConfig | None:
        self._load()
        return self._providers.get((platform_id, provider))
