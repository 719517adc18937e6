"""
Real-Time Wire Envelopes

Every frame on the socket is a JSON object {"type": str, "payload": object}.

Inbound types: message, heartbeat
Outbound types: connected, new_message, notification, heartbeat, error
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict


class EnvelopeType(str, Enum):
    """Types of envelopes exchanged over the socket."""
    # Outbound
    CONNECTED = "connected"
    NEW_MESSAGE = "new_message"
    NOTIFICATION = "notification"
    ERROR = "error"

    # Both directions
    HEARTBEAT = "heartbeat"

    # Inbound
    MESSAGE = "message"


INBOUND_TYPES = frozenset({EnvelopeType.MESSAGE, EnvelopeType.HEARTBEAT})


class MalformedEnvelope(ValueError):
    """Inbound frame is not a valid envelope. Logged and dropped."""


@dataclass
class Envelope:
    type: EnvelopeType
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type.value, "payload": self.payload}

    @classmethod
    def from_dict(cls, data: Any) -> "Envelope":
        """Parse an inbound frame, raising MalformedEnvelope if it is not one."""
        if not isinstance(data, dict):
            raise MalformedEnvelope("envelope must be a JSON object")

        raw_type = data.get("type")
        try:
            envelope_type = EnvelopeType(raw_type)
        except ValueError:
            raise MalformedEnvelope(f"unknown envelope type: {raw_type!r}")

        if envelope_type not in INBOUND_TYPES:
            raise MalformedEnvelope(f"{envelope_type.value} is not accepted from clients")

        payload = data.get("payload", {})
        if payload is None:
            payload = {}
        if not isinstance(payload, dict):
            raise MalformedEnvelope("payload must be a JSON object")

        return cls(type=envelope_type, payload=payload)


# =============================================================================
# ENVELOPE FACTORIES
# =============================================================================

def connected_envelope(user_id: str, role: str) -> Envelope:
    return Envelope(
        type=EnvelopeType.CONNECTED,
        payload={
            "message": "Connected to real-time updates",
            "user_id": user_id,
            "role": role,
        },
    )


def heartbeat_envelope() -> Envelope:
    return Envelope(
        type=EnvelopeType.HEARTBEAT,
        payload={"timestamp": datetime.utcnow().isoformat()},
    )


def error_envelope(error: str, error_code: str = "ERROR") -> Envelope:
    return Envelope(
        type=EnvelopeType.ERROR,
        payload={"error": error, "error_code": error_code},
    )
