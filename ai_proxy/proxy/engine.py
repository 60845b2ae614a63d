"""Forwarding engine: one inbound request, at most one outbound call.

Pipeline: Resolve -> (Build + Validate host, Quota check) -> Sanitize headers
-> Dispatch -> Translate -> Account

Host validation and the quota check both finish before any network action.
By default the host is validated first; ``check_host_before_quota=False``
checks quota first instead.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field, replace

from ai_proxy.logging.audit import get_audit_logger, report_exception, request_id_var
from ai_proxy.providers.models import ProviderConfig
from ai_proxy.providers.store import ProviderStore
from ai_proxy.proxy.dispatcher import ForwardResult, TransportFailure, UpstreamDispatcher
from ai_proxy.proxy.errors import (
    AuthorityInjection,
    ForbiddenHost,
    ProviderNotFound,
    QuotaExceeded,
    QuotaStoreUnavailable,
)
from ai_proxy.proxy.headers import sanitize_headers
from ai_proxy.proxy.url import TargetUrl, build_target_url
from ai_proxy.security.allowlist import HostAllowlist
from ai_proxy.security.principal import Principal
from ai_proxy.usage.limiter import UsageLimiter, UsageType

USAGE_PER_REQUEST = 1


@dataclass
class ForwardRequest:
    method: str
    path: str
    headers: list[tuple[str, str]] = field(default_factory=list)
    body: bytes | None = None
    query: str = ""


class ForwardingEngine:

    def __init__(
        self,
        providers: ProviderStore,
        limiter: UsageLimiter,
        dispatcher: UpstreamDispatcher,
        allowlist: HostAllowlist,
        check_host_before_quota: bool = True,
        forward_headers: Iterable[str] = (),
    ):
        self._providers = providers
        self._limiter = limiter
        self._dispatcher = dispatcher
        self._allowlist = allowlist
        self._check_host_before_quota = check_host_before_quota
        self._forward_headers = tuple(forward_headers)

    async def forward(self, principal: Principal, provider: str, request: ForwardRequest) -> ForwardResult:
        """Forward ``request`` to ``provider`` on behalf of ``principal``.

        Raises:
            ProxyError: a subclass describing the first failed step. An
                upstream error status is not a failure and is returned.
        """
        config = await self._resolve(principal, provider)

        if self._check_host_before_quota:
            target = self._build_target(principal, config, request)
            await self._check_quota(principal, provider)
        else:
            await self._check_quota(principal, provider)
            target = self._build_target(principal, config, request)

        headers = sanitize_headers(request.headers, config.default_headers, self._forward_headers)

        outcome = await self._dispatcher.dispatch(request.method, target.url, headers, request.body)
        if isinstance(outcome, TransportFailure):
            get_audit_logger().warning(
                "Upstream request failed",
                extra={"audit_data": {
                    "project_id": principal.project_id,
                    "provider": provider,
                    "hostname": target.hostname,
                    "error_type": type(outcome.error).__name__,
                    "detail": outcome.detail,
                }},
            )
            raise outcome.error

        await self._account(principal, config)
        return outcome.result

    async def _resolve(self, principal: Principal, provider: str) -> ProviderConfig:
        platform_id = await self._providers.get_platform_id(principal.project_id)
        if platform_id is None:
            raise ProviderNotFound(provider, f"project {principal.project_id!r} has no platform")

        config = await self._providers.get_provider_config(platform_id, provider)
        if config is None:
            raise ProviderNotFound(provider)
        if not config.platform_id:
            config = replace(config, platform_id=platform_id)
        return config

    async def _check_quota(self, principal: Principal, provider: str) -> None:
        try:
            exceeded = await self._limiter.check_exceeded(principal.project_id, UsageType.AI_TOKENS)
        except Exception as e:
            # Fail closed: unmetered usage is a cost-control failure
            report_exception(e, "Usage limit check failed", project_id=principal.project_id)
            raise QuotaStoreUnavailable(str(e)) from e

        if exceeded:
            get_audit_logger().info(
                "AI usage limit exceeded",
                extra={"audit_data": {"project_id": principal.project_id, "provider": provider}},
            )
            raise QuotaExceeded()

    def _build_target(self, principal: Principal, config: ProviderConfig, request: ForwardRequest) -> TargetUrl:
        try:
            target = build_target_url(config.base_url, request.path, request.query)
        except AuthorityInjection as e:
            _log_blocked(principal, config, reason=e.detail)
            raise

        if not self._allowlist.is_allowed(target.hostname):
            _log_blocked(principal, config, hostname=target.hostname)
            raise ForbiddenHost(target.hostname)
        return target

    async def _account(self, principal: Principal, config: ProviderConfig) -> None:
        # The response is already obtained; accounting errors must not fail it
        try:
            await self._limiter.increment(
                principal.project_id,
                USAGE_PER_REQUEST,
                UsageType.AI_TOKENS,
                platform_id=config.platform_id or None,
                idempotency_key=request_id_var.get("") or None,
            )
        except Exception as e:
            report_exception(
                e, "Usage accounting failed",
                project_id=principal.project_id, provider=config.provider,
            )

    async def close(self) -> None:
        await self._dispatcher.close()


def _log_blocked(principal: Principal, config: ProviderConfig, **details) -> None:
    get_audit_logger().warning(
        "SSRF attempt blocked",
        extra={"audit_data": {
            "security_event": True,
            "provider": config.provider,
            "project_id": principal.project_id,
            "principal_type": principal.type.value,
            **details,
        }},
    )
