"""Outbound header policy.

Inbound headers are forwarded only if their name is allowlisted. Hop-by-hop
headers (RFC 9110 §7.6.1) are never forwarded, even when an operator
allowlists them. Provider default headers are applied last, so a client can
never replace the provider's credentials.
"""

from collections.abc import Iterable, Mapping

HOP_BY_HOP_HEADERS: frozenset[str] = frozenset({
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "proxy-connection",
    "te",
    "trailer",
    "trailers",
    "transfer-encoding",
    "upgrade",
    "host",            # derived from the target URL
    "content-length",  # httpx computes it from content=
})

# Content negotiation and provider protocol headers
DEFAULT_FORWARDED_HEADERS: frozenset[str] = frozenset({
    "accept",
    "content-type",
    "user-agent",
    "anthropic-version",
    "anthropic-beta",
    "openai-beta",
    "openai-organization",
    "openai-project",
    "idempotency-key",
})


def sanitize_headers(
    inbound: Iterable[tuple[str, str]] | Mapping[str, str],
    default_headers: Mapping[str, str],
    extra_allowed: Iterable[str] = (),
) -> dict[str, str]:
    """Build the header set for the upstream call.

    Args:
        inbound: Request headers as (name, value) pairs or a mapping.
        default_headers: Provider defaults, e.g. the provider API key.
        extra_allowed: Additional inbound header names to forward.

    Returns:
        Outbound headers; provider defaults override same-named client headers
        regardless of case.
    """
    items = list(inbound.items()) if isinstance(inbound, Mapping) else list(inbound)
    allowed = DEFAULT_FORWARDED_HEADERS | {name.lower() for name in extra_allowed}

    # Headers nominated by Connection are hop-by-hop for this leg too
    nominated: set[str] = set()
    for name, value in items:
        if name.lower() == "connection":
            nominated.update(token.strip().lower() for token in value.split(",") if token.strip())

    headers: dict[str, str] = {}
    for name, value in items:
        lower_name = name.lower()
        if lower_name in HOP_BY_HOP_HEADERS or lower_name in nominated:
            continue
        if lower_name not in allowed:
            continue
        headers[lower_name] = value

    for name, value in default_headers.items():
        headers.pop(name.lower(), None)
        headers[name] = value

    return headers
