"""Tests for ai_proxy/config/settings.py — Settings and list properties."""

from ai_proxy.config.settings import get_settings


class TestSettings:

    def test_defaults(self, override_settings):
        override_settings()
        s = get_settings()
        assert s.allowed_hosts_list == [
            "api.openai.com",
            "api.anthropic.com",
            "api.cohere.ai",
            "api.google.com",
            "api.mistral.ai",
            "api.replicate.com",
        ]
        assert s.check_host_before_quota is True
        assert s.provider_store_backend == "json"
        assert s.usage_store_backend == "memory"
        assert s.ai_usage_default_limit is None
        assert s.principal_types_list == ["engine"]
        assert s.forward_headers_list == []
        assert s.log_level == "INFO"

    def test_allowed_hosts_override(self, override_settings):
        override_settings(ALLOWED_AI_HOSTS="mock.upstream.test, api.openai.com ,")
        assert get_settings().allowed_hosts_list == ["mock.upstream.test", "api.openai.com"]

    def test_forward_headers_lowercased(self, override_settings):
        override_settings(FORWARD_HEADER_ALLOWLIST="X-Stainless-Lang,,OpenAI-Beta")
        assert get_settings().forward_headers_list == ["x-stainless-lang", "openai-beta"]

    def test_env_override(self, override_settings):
        override_settings(
            CHECK_HOST_BEFORE_QUOTA="false",
            AI_USAGE_DEFAULT_LIMIT="1000",
            UPSTREAM_TIMEOUT_SECONDS="15",
            ALLOWED_PRINCIPAL_TYPES="Engine,SERVICE",
        )
        s = get_settings()
        assert s.check_host_before_quota is False
        assert s.ai_usage_default_limit == 1000
        assert s.upstream_timeout_seconds == 15.0
        assert s.principal_types_list == ["engine", "service"]
