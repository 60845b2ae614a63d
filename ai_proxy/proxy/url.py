"""Target URL construction for outbound provider calls.

The client-supplied suffix is only ever appended to the provider base URL.
It is never parsed as a URL of its own, so it cannot replace the scheme or
authority of the base.
"""

import re
from dataclasses import dataclass
from urllib.parse import urlsplit

from ai_proxy.proxy.errors import AuthorityInjection, InvalidTargetUrl
from ai_proxy.security.allowlist import normalize_hostname

ALLOWED_SCHEMES = frozenset({"https"})

# Control characters, space, DEL and backslash
_UNSAFE_CHARS = re.compile(r"[\x00-\x20\x7f\\]")


@dataclass(frozen=True)
class TargetUrl:
    url: str
    hostname: str  # normalized, ready for allowlist lookup


def build_target_url(base_url: str, path: str, query: str = "") -> TargetUrl:
    """Join a provider base URL and a client path suffix.

    Raises:
        InvalidTargetUrl: if the suffix tries to introduce a new authority or
            the joined URL is not an absolute https URL with a plain host.
    """
    if path.startswith("//") or "://" in path:
        raise AuthorityInjection(f"path suffix may not carry an authority: {path!r}")
    for label, value in (("base url", base_url), ("path", path), ("query", query)):
        if _UNSAFE_CHARS.search(value):
            raise InvalidTargetUrl(f"{label} contains unsafe characters")

    suffix = path[1:] if path.startswith("/") else path
    url = f"{base_url.rstrip('/')}/{suffix}"
    if query:
        url = f"{url}?{query}"

    return TargetUrl(url=url, hostname=parse_target_hostname(url))


def parse_target_hostname(url: str) -> str:
    """Parse ``url`` and return its normalized hostname.

    Authorities with userinfo or percent-encoding are refused outright: they
    are the usual vehicles for parser-differential host tricks.
    """
    try:
        parts = urlsplit(url)
        parts.port  # raises ValueError on a malformed port
    except ValueError as e:
        raise InvalidTargetUrl(f"unparseable url: {e}") from e

    if parts.scheme not in ALLOWED_SCHEMES:
        raise InvalidTargetUrl(f"scheme {parts.scheme!r} is not allowed")
    if not parts.netloc:
        raise InvalidTargetUrl("url has no authority")
    if "@" in parts.netloc or "%" in parts.netloc:
        raise AuthorityInjection(f"url authority is malformed: {parts.netloc!r}")
    if not parts.hostname:
        raise InvalidTargetUrl("url has no hostname")

    try:
        return normalize_hostname(parts.hostname)
    except ValueError as e:
        raise InvalidTargetUrl(str(e)) from e
