"""Data classes for the AI assistant transcript.

A transcript is an ordered list of turns. It is persisted as a JSON array with
ISO-8601 timestamps and parsed back into datetimes on restore.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
import json


class TurnOrigin(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class Turn:
    """One message in the assistant transcript."""
    origin: str
    text: str
    timestamp: datetime
    entity_ids: List[int] = field(default_factory=list)
    entities: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def is_user(self) -> bool:
        return self.origin == TurnOrigin.USER.value

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "origin": self.origin,
            "text": self.text,
            "timestamp": self.timestamp.isoformat(),
            "entity_ids": list(self.entity_ids),
            "entities": list(self.entities),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Turn":
        """Create instance from dictionary."""
        return cls(
            origin=data["origin"],
            text=data["text"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
            entity_ids=list(data.get("entity_ids") or []),
            entities=list(data.get("entities") or []),
        )

    def validate(self) -> None:
        """Validate turn data integrity."""
        if self.origin not in (TurnOrigin.USER.value, TurnOrigin.ASSISTANT.value):
            raise ValueError(f"origin must be 'user' or 'assistant', got {self.origin!r}")
        if not isinstance(self.text, str):
            raise ValueError("text must be a string")
        if not isinstance(self.timestamp, datetime):
            raise ValueError("timestamp must be a datetime object")


def transcript_to_json(turns: List[Turn]) -> str:
    return json.dumps([turn.to_dict() for turn in turns])


def transcript_from_json(raw: str) -> List[Turn]:
    """Parse a persisted transcript.

    Raises:
        ValueError: If the payload is not a list of valid turns
    """
    data = json.loads(raw)
    if not isinstance(data, list):
        raise ValueError("Persisted transcript must be a JSON array")
    turns = []
    for item in data:
        turn = Turn.from_dict(item)
        turn.validate()
        turns.append(turn)
    return turns


@dataclass
class AssistantReply:
    """Reply from the remote assistant."""
    message: str
    entity_ids: List[int] = field(default_factory=list)

    def validate(self) -> None:
        if not isinstance(self.message, str) or not self.message.strip():
            raise ValueError("message must be a non-empty string")
        if not all(isinstance(entity_id, int) for entity_id in self.entity_ids):
            raise ValueError("entity_ids must be integers")


@dataclass
class TranscriptStats:
    total_turns: int
    user_turns: int
    assistant_turns: int
    entities_recommended: int
    unique_entity_ids: List[int]
    started_at: Optional[datetime] = None
