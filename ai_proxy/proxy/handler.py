"""Engine wiring: builds the forwarding engine from settings.

The allowlist is built once here and injected, so tests can construct an
engine with any host set.
"""

from ai_proxy.config.settings import get_settings
from ai_proxy.providers.factory import get_provider_store
from ai_proxy.proxy.dispatcher import UpstreamDispatcher
from ai_proxy.proxy.engine import ForwardingEngine
from ai_proxy.security.allowlist import HostAllowlist
from ai_proxy.usage.factory import get_usage_limiter

_engine: ForwardingEngine | None = None


def get_engine() -> ForwardingEngine:
    """Get or create the process-wide forwarding engine."""
    global _engine
    if _engine is not None:
        return _engine

    settings = get_settings()
    _engine = ForwardingEngine(
        providers=get_provider_store(),
        limiter=get_usage_limiter(),
        dispatcher=UpstreamDispatcher(
            timeout=settings.upstream_timeout_seconds,
            connect_timeout=settings.upstream_connect_timeout_seconds,
        ),
        allowlist=HostAllowlist(settings.allowed_hosts_list),
        check_host_before_quota=settings.check_host_before_quota,
        forward_headers=settings.forward_headers_list,
    )
    return _engine


async def close_engine() -> None:
    """Gracefully close the upstream connection pool on shutdown."""
    global _engine
    if _engine is not None:
        await _engine.close()
        _engine = None
