"""
Immutable notification events.

Every externally visible state change is reported as one MintEvent so that
supply history can be audited from the journal alone.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

# Event type constants
RESERVATION_CREATED = "reservation.created"
MINT_COMMITTED = "mint.committed"
MINT_REJECTED = "mint.rejected"
LOCK_TOGGLED = "lock.toggled"
LIMIT_CHANGED = "limit.changed"
PRICE_CHANGED = "price.changed"
METADATA_CHANGED = "metadata.changed"
TOKENS_BURNED = "tokens.burned"

# All valid event types
EVENT_TYPES = frozenset({
    RESERVATION_CREATED,
    MINT_COMMITTED,
    MINT_REJECTED,
    LOCK_TOGGLED,
    LIMIT_CHANGED,
    PRICE_CHANGED,
    METADATA_CHANGED,
    TOKENS_BURNED,
})


@dataclass(frozen=True)
class MintEvent:
    """
    One entry in the event journal.

    token_id is None only for collection-wide events (base URI changes).
    """

    event_type: str  # One of EVENT_TYPES
    token_id: int | None
    timestamp: datetime
    actor: str  # Account that made the call, or "system"
    payload: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.event_type not in EVENT_TYPES:
            raise ValueError(f"Invalid event_type: {self.event_type}")

    def to_dict(self) -> dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        result: dict[str, Any] = {
            "event_type": self.event_type,
            "token_id": self.token_id,
            "timestamp": self.timestamp.isoformat(),
            "actor": self.actor,
        }
        if self.payload:
            result["payload"] = self.payload
        return result

    def to_json(self) -> str:
        """Serialize to JSON string (single line)."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MintEvent:
        return cls(
            event_type=data["event_type"],
            token_id=data.get("token_id"),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            actor=data["actor"],
            payload=data.get("payload", {}),
        )

    @classmethod
    def from_json(cls, line: str) -> MintEvent:
        return cls.from_dict(json.loads(line))


# Payload field documentation for each event type
EVENT_PAYLOAD_FIELDS = {
    RESERVATION_CREATED: {
        "sequence": "Position in the reservation history",
        "max_supply": "Hard cap",
        "user_limit": "Initial public-path ceiling",
        "unit_price": "Initial per-unit fee",
        "metadata_ref": "URI suffix",
        "user_locked": "Whether USER_RESTRICTED was engaged at reservation",
    },
    MINT_COMMITTED: {
        "path": "admin | public",
        "recipient": "Account credited",
        "amount": "Units issued",
        "minted_count": "Counter after the mint",
        "payment": "Value forwarded to the payee (public path)",
        "globally_locked": "Whether this mint engaged GLOBAL",
    },
    MINT_REJECTED: {
        "path": "admin | public",
        "amount": "Units requested",
        "code": "Error code",
        "reason": "Error message",
    },
    LOCK_TOGGLED: {
        "category": "Lock category",
        "locked": "Resulting flag value",
    },
    LIMIT_CHANGED: {
        "requested": "Limit asked for",
        "user_limit": "Limit stored after clamping",
    },
    PRICE_CHANGED: {
        "unit_price": "New per-unit fee",
    },
    METADATA_CHANGED: {
        "metadata_ref": "New URI suffix (token events)",
        "base_uri": "New base URI (collection events)",
    },
    TOKENS_BURNED: {
        "holder": "Account debited",
        "amount": "Units burned",
    },
}


def create_event(
    event_type: str,
    token_id: int | None,
    actor: str,
    *,
    payload: dict[str, Any] | None = None,
    timestamp: datetime | None = None,
) -> MintEvent:
    """Factory with consistent UTC timestamps."""
    return MintEvent(
        event_type=event_type,
        token_id=token_id,
        timestamp=timestamp or datetime.now(timezone.utc),
        actor=actor,
        payload=payload or {},
    )
