"""Configuration for the TalkBack webhook service."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Klaviyo Configuration
    klaviyo_api_key: str = ""
    klaviyo_api_url: str = "https://a.klaviyo.com"
    klaviyo_revision: str = "2024-02-15"  # Pinned API revision header
    klaviyo_timeout_seconds: float = 30.0

    # ElevenLabs webhook signing secret
    # Leave blank to skip signature verification during development.
    # NEVER leave blank in production: unsigned requests will be accepted.
    elevenlabs_secret: str = ""
    signature_header: str = "x-elevenlabs-signature"

    # Unexpected errors answer 200 so ElevenLabs doesn't retry during rollout.
    # Set to false once the integration is stable to answer 500 instead.
    suppress_upstream_retries: bool = True

    # Service Configuration
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def signature_verification_enabled(self) -> bool:
        return bool(self.elevenlabs_secret)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
