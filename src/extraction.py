"""Body parsing and field extraction for ElevenLabs webhook payloads."""

import json
from typing import Any, Iterable, Optional, Union

from .models import TranscriptTurn

COMPLETED_EVENT_TYPE = "conversation_completed"

# Where ElevenLabs may put dynamic variables inside metadata
DYNAMIC_VARIABLE_KEYS = ("dynamic_variables", "dynamicVariables")


class PayloadError(ValueError):
    """Raised when the request body is not a JSON object."""


def parse_body(raw: Union[str, bytes]) -> dict:
    """
    Decode a webhook body into a dict.

    Some senders deliver the JSON document as a JSON string, so a decoded
    string is decoded once more.
    """
    try:
        data = json.loads(raw)
        if isinstance(data, str):
            data = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise PayloadError(f"Invalid JSON body: {e}") from e

    if not isinstance(data, dict):
        raise PayloadError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def is_completed_event(event_type: Any) -> bool:
    """Missing, null, empty, 0 or false types are treated as completed conversations."""
    if event_type is None or event_type in ("", 0):
        return True
    return event_type == COMPLETED_EVENT_TYPE


def _non_empty(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def resolve_customer_id(metadata: Optional[dict]) -> Optional[str]:
    """
    Find the Klaviyo profile id in the webhook metadata.

    Checks metadata.customer_id first, then the dynamic variables.
    """
    if not metadata:
        return None

    customer_id = _non_empty(metadata.get("customer_id"))
    if customer_id:
        return customer_id

    for key in DYNAMIC_VARIABLE_KEYS:
        variables = metadata.get(key)
        if isinstance(variables, dict):
            customer_id = _non_empty(variables.get("customer_id"))
            if customer_id:
                return customer_id

    return None


def flatten_transcript(turns: Iterable[TranscriptTurn]) -> str:
    """Render transcript turns as "Agent: ..." / "Customer: ..." lines."""
    lines = []
    for turn in turns:
        speaker = "Agent" if turn.role == "agent" else "Customer"
        lines.append(f"{speaker}: {turn.content}")
    return "\n".join(lines)
