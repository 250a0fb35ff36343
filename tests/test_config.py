"""Tests for settings and logging setup."""
import json
import logging

from src.config import Settings
from src.logging_config import CustomJsonFormatter


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("KLAVIYO_API_KEY", "ELEVENLABS_SECRET", "SUPPRESS_UPSTREAM_RETRIES"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.klaviyo_api_url == "https://a.klaviyo.com"
        assert settings.klaviyo_revision == "2024-02-15"
        assert settings.signature_header == "x-elevenlabs-signature"
        assert settings.suppress_upstream_retries is True
        assert settings.signature_verification_enabled is False

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("KLAVIYO_API_KEY", "pk_env")
        monkeypatch.setenv("ELEVENLABS_SECRET", "whsec_env")
        monkeypatch.setenv("SUPPRESS_UPSTREAM_RETRIES", "false")

        settings = Settings(_env_file=None)

        assert settings.klaviyo_api_key == "pk_env"
        assert settings.signature_verification_enabled is True
        assert settings.suppress_upstream_retries is False


class TestJsonFormatter:
    def test_adds_service_fields(self):
        formatter = CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
        record = logging.LogRecord("src.main", logging.INFO, "main.py", 10, "hello", None, None)

        output = json.loads(formatter.format(record))

        assert output["message"] == "hello"
        assert output["service"] == "talkback-service"
        assert output["level"] == "INFO"
        assert output["logger"] == "src.main"
        assert output["source"] == "main.py:10"
