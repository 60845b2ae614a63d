"""Provider configuration model."""

from dataclasses import dataclass, field


@dataclass
class ProviderConfig:
    provider: str  # "openai" | "anthropic" | ...
    base_url: str  # absolute https URL, e.g. "https://api.openai.com"
    default_headers: dict[str, str] = field(default_factory=dict)  # e.g. provider API key
    platform_id: str = ""
