"""Destination host allowlist.

Outbound calls may only reach hosts in a fixed set. The set is built once at
startup and injected where it is needed, so tests can swap in their own.
Membership is decided on the parsed hostname, never on the raw URL string.
"""

from collections.abc import Iterable

DEFAULT_ALLOWED_HOSTS: frozenset[str] = frozenset({
    "api.openai.com",
    "api.anthropic.com",
    "api.cohere.ai",
    "api.google.com",
    "api.mistral.ai",
    "api.replicate.com",
})


def normalize_hostname(hostname: str) -> str:
    """Lowercase, drop one trailing dot and IDNA-encode a hostname.

    Raises ValueError if the name cannot be IDNA-encoded.
    """
    host = hostname.strip().lower()
    if host.endswith("."):
        host = host[:-1]
    if not host:
        raise ValueError("empty hostname")
    try:
        return host.encode("idna").decode("ascii")
    except UnicodeError as e:
        raise ValueError(f"invalid hostname: {hostname!r}") from e


class HostAllowlist:
    """Immutable set of hostnames outbound requests may target."""

    def __init__(self, hosts: Iterable[str] = DEFAULT_ALLOWED_HOSTS):
        self._hosts = frozenset(normalize_hostname(h) for h in hosts)

    @property
    def hosts(self) -> frozenset[str]:
        return self._hosts

    def is_allowed(self, hostname: str) -> bool:
        try:
            return normalize_hostname(hostname) in self._hosts
        except ValueError:
            return False

    def __contains__(self, hostname: str) -> bool:
        return self.is_allowed(hostname)

    def __len__(self) -> int:
        return len(self._hosts)
