"""Application settings loaded from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings

DEFAULT_AI_HOSTS = (
    "api.openai.com,"
    "api.anthropic.com,"
    "api.cohere.ai,"
    "api.google.com,"
    "api.mistral.ai,"
    "api.replicate.com"
)


class Settings(BaseSettings):
    # Destination allowlist (comma-separated hostnames)
    allowed_ai_hosts: str = DEFAULT_AI_HOSTS
    check_host_before_quota: bool = True

    # Extra inbound header names forwarded upstream (comma-separated)
    forward_header_allowlist: str = ""

    # Outbound dispatch
    upstream_timeout_seconds: float = 60.0
    upstream_connect_timeout_seconds: float = 10.0

    # Principals accepted from the authentication layer
    allowed_principal_types: str = "engine"

    # Provider configuration store
    provider_store_backend: str = "json"  # "json" | "dynamodb"
    provider_config_path: str = "providers.json"
    dynamodb_projects_table: str = "ai-proxy-projects"
    dynamodb_providers_table: str = "ai-proxy-providers"

    # Usage limiter
    usage_store_backend: str = "memory"  # "memory" | "dynamodb"
    dynamodb_usage_table: str = "ai-proxy-usage"
    ai_usage_default_limit: int | None = None  # None = unlimited

    aws_region: str = "us-east-1"

    # Logging
    log_level: str = "INFO"
    audit_log_file: str = ""  # Empty = stdout only

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def allowed_hosts_list(self) -> list[str]:
        return _split_csv(self.allowed_ai_hosts)

    @property
    def forward_headers_list(self) -> list[str]:
        return [h.lower() for h in _split_csv(self.forward_header_allowlist)]

    @property
    def principal_types_list(self) -> list[str]:
        return [t.lower() for t in _split_csv(self.allowed_principal_types)]


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
