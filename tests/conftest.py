"""Shared fixtures for the AI provider proxy test suite."""

import json
import logging

import httpx
import pytest

from ai_proxy.config.settings import get_settings
from ai_proxy.logging.audit import AUDIT_LOGGER_NAME
from ai_proxy.providers.models import ProviderConfig
from ai_proxy.providers.store import ProviderStore
from ai_proxy.proxy.dispatcher import UpstreamDispatcher
from ai_proxy.proxy.engine import ForwardingEngine
from ai_proxy.security.allowlist import HostAllowlist
from ai_proxy.security.principal import Principal, PrincipalType
from ai_proxy.usage.limiter import InMemoryUsageLimiter

UPSTREAM_JSON = b'{"id":"chatcmpl-1","choices":[{"message":{"content":"Hello!"}}]}'


class StaticProviderStore(ProviderStore):
    """In-memory provider store for tests."""

    def __init__(self, projects: dict[str, str], configs: list[ProviderConfig]):
        self.projects = projects
        self.configs = {(c.platform_id, c.provider): c for c in configs}

    async def get_platform_id(self, project_id: str) -> str | None:
        return self.projects.get(project_id)

    async def get_provider_config(self, platform_id: str, provider: str) -> ProviderConfig | None:
        return self.configs.get((platform_id, provider))


class FakeUpstream:
    """httpx.MockTransport handler that records every outbound request."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.respond = lambda request: httpx.Response(
            200, content=UPSTREAM_JSON, headers={"content-type": "application/json"}
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.respond(request)


@pytest.fixture
def principal() -> Principal:
    return Principal(project_id="proj-1", type=PrincipalType.ENGINE)


@pytest.fixture
def provider_store() -> StaticProviderStore:
    return StaticProviderStore(
        projects={"proj-1": "plat-1", "proj-2": "plat-1"},
        configs=[
            ProviderConfig(
                provider="openai",
                base_url="https://api.openai.com",
                default_headers={"Authorization": "Bearer sk-provider-key"},
                platform_id="plat-1",
            ),
            ProviderConfig(
                provider="anthropic",
                base_url="https://api.anthropic.com/",
                default_headers={"x-api-key": "sk-ant-provider", "anthropic-version": "2023-06-01"},
                platform_id="plat-1",
            ),
            ProviderConfig(
                provider="evil",
                base_url="https://evil.example.com",
                default_headers={"Authorization": "Bearer sk-provider-key"},
                platform_id="plat-1",
            ),
        ],
    )


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def limiter() -> InMemoryUsageLimiter:
    return InMemoryUsageLimiter()


@pytest.fixture
def make_engine(provider_store, upstream, limiter):
    """Factory fixture: engine wired to the fake upstream and in-memory limiter."""
    def _make(**kwargs) -> ForwardingEngine:
        params = {
            "providers": provider_store,
            "limiter": limiter,
            "dispatcher": UpstreamDispatcher(transport=httpx.MockTransport(upstream)),
            "allowlist": HostAllowlist(),
        }
        params.update(kwargs)
        return ForwardingEngine(**params)

    return _make


@pytest.fixture
def providers_json_file(tmp_path):
    """Create a temp providers.json file and return its path."""
    data = {
        "projects": [
            {"project_id": "proj-1", "platform_id": "plat-1"},
            {"project_id": "proj-9", "platform_id": "plat-9"},
        ],
        "providers": [
            {
                "platform_id": "plat-1",
                "provider": "openai",
                "base_url": "https://api.openai.com",
                "default_headers": {"Authorization": "Bearer sk-provider-key"},
            },
            {
                "platform_id": "plat-1",
                "provider": "evil",
                "base_url": "https://evil.example.com",
            },
        ],
    }
    path = tmp_path / "providers.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


@pytest.fixture
def override_settings(monkeypatch):
    """Factory fixture: set env vars and clear settings cache.

    Usage:
        override_settings(ALLOWED_AI_HOSTS="api.openai.com", LOG_LEVEL="DEBUG")
    """
    def _override(**kwargs):
        for key, value in kwargs.items():
            monkeypatch.setenv(key.upper(), str(value))
        # Clear lru_cache so Settings re-reads env
        get_settings.cache_clear()

    yield _override

    # Always clear cache on teardown so other tests get fresh settings
    get_settings.cache_clear()


class _ListHandler(logging.Handler):
    def __init__(self):
        super().__init__(level=logging.DEBUG)
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


@pytest.fixture
def audit_records():
    """Collect records emitted on the audit logger during a test."""
    logger = logging.getLogger(AUDIT_LOGGER_NAME)
    handler = _ListHandler()
    previous_level = logger.level
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    yield handler.records
    logger.removeHandler(handler)
    logger.setLevel(previous_level)
