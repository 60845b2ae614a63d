"""Single outbound HTTP call to the provider.

Returns a tagged outcome instead of raising: an upstream that answered (with
any non-redirect status) is an ``UpstreamReply``; everything else is a
``TransportFailure``. Redirects are never followed.
"""

from dataclasses import dataclass

import httpx

from ai_proxy.proxy.errors import ProxyError, UpstreamError, UpstreamUnavailable

DEFAULT_CONTENT_TYPE = "text/plain"


@dataclass
class ForwardResult:
    status_code: int
    content_type: str
    body: bytes


@dataclass
class UpstreamReply:
    result: ForwardResult


@dataclass
class TransportFailure:
    error: ProxyError
    detail: str  # internal only, never sent to the caller


DispatchOutcome = UpstreamReply | TransportFailure


class UpstreamDispatcher:
    """Owns the pooled httpx client used for provider calls."""

    def __init__(
        self,
        timeout: float = 60.0,
        connect_timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._timeout = timeout
        self._connect_timeout = connect_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout, connect=self._connect_timeout),
                follow_redirects=False,
                trust_env=False,  # ignore HTTP(S)_PROXY and .netrc
                transport=self._transport,
            )
        return self._client

    async def dispatch(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: bytes | None = None,
    ) -> DispatchOutcome:
        client = await self._get_client()
        try:
            response = await client.request(method, url, headers=headers, content=body)
        except httpx.TimeoutException as e:
            return TransportFailure(UpstreamUnavailable("timeout"), f"Upstream timed out: {e!r}")
        except httpx.ConnectError as e:
            return TransportFailure(UpstreamUnavailable("unreachable"), f"Cannot reach upstream: {e!r}")
        except httpx.HTTPError as e:
            return TransportFailure(UpstreamError("transport"), f"Upstream error: {e!r}")

        if 300 <= response.status_code < 400:
            location = response.headers.get("location", "")
            return TransportFailure(
                UpstreamError("redirect"),
                f"Upstream redirect {response.status_code} to {location!r} refused",
            )

        return UpstreamReply(ForwardResult(
            status_code=response.status_code,
            content_type=response.headers.get("content-type") or DEFAULT_CONTENT_TYPE,
            body=response.content,
        ))

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
