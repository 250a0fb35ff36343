"""Request, update and response models for the TalkBack webhook."""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator


# =============================================================================
# INBOUND (ElevenLabs)
# =============================================================================


class TranscriptTurn(BaseModel):
    """One turn of the voice conversation."""

    model_config = ConfigDict(extra="ignore")

    role: str = "user"  # "agent" or "user"
    content: str = ""

    @field_validator("content", mode="before")
    @classmethod
    def _content_to_str(cls, value: Any) -> str:
        return "" if value is None else str(value)


class InboundEvent(BaseModel):
    """
    ElevenLabs post-call webhook payload.

    The payload structure is approximate, so every field is optional and
    anything we don't use is ignored:

        {
          "type": "conversation_completed",
          "conversation_id": "conv_xxx",
          "metadata": {"customer_id": "<klaviyo profile id>"},
          "transcript": [{"role": "agent" | "user", "content": "..."}]
        }
    """

    model_config = ConfigDict(extra="ignore")

    type: Optional[Any] = None  # Compared as sent, ElevenLabs may not send a string
    conversation_id: Optional[str] = None
    metadata: dict[str, Any] = {}
    transcript: list[TranscriptTurn] = []

    @field_validator("metadata", mode="before")
    @classmethod
    def _metadata_to_dict(cls, value: Any) -> dict:
        # Anything but an object carries no customer_id
        return value if isinstance(value, dict) else {}

    @field_validator("transcript", mode="before")
    @classmethod
    def _null_transcript_to_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("conversation_id", mode="before")
    @classmethod
    def _conversation_id_to_str(cls, value: Any) -> Optional[str]:
        return None if value is None else str(value)


# =============================================================================
# OUTBOUND (Klaviyo)
# =============================================================================


def utc_timestamp() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and a Z suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ProfileUpdate(BaseModel):
    """Custom properties written to a Klaviyo profile when a session completes."""

    profile_id: str
    properties: dict[str, Optional[str]]

    @field_validator("profile_id")
    @classmethod
    def _profile_id_not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("profile_id must not be empty")
        return value

    @classmethod
    def completed(
        cls,
        profile_id: str,
        conversation_id: Optional[str],
        transcript_text: Optional[str],
        completed_at: Optional[str] = None,
    ) -> "ProfileUpdate":
        """Build the update that marks a TalkBack session as completed."""
        return cls(
            profile_id=profile_id,
            properties={
                "talkback_status": "completed",
                "talkback_completed_at": completed_at or utc_timestamp(),
                "talkback_conversation_id": conversation_id or None,
                "talkback_transcript": transcript_text or None,
            },
        )

    def to_payload(self) -> dict:
        """Render as a JSON:API profile document."""
        return {
            "data": {
                "type": "profile",
                "id": self.profile_id,
                "attributes": {
                    "properties": dict(self.properties),
                },
            }
        }


# =============================================================================
# RESPONSES
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    timestamp: str
    signature_verification: Optional[bool] = None
