"""Data models for conversations and messages.

Rows come back from the backend as dictionaries; these dataclasses are the
typed view the repository, read tracker and send pipeline work with.
"""

from dataclasses import dataclass, asdict, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class ConversationType(str, Enum):
    USER_DEALER = "user_dealer"
    USER_USER = "user_user"


class SenderRole(str, Enum):
    USER = "user"
    DEALER = "dealer"
    SELLER_USER = "seller_user"


class ViewerRole(str, Enum):
    """Perspective from which a read marker is written."""
    USER = "user"
    SELLER_USER = "seller_user"


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO8601 string (a trailing Z is accepted) into a datetime."""
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace('Z', '+00:00'))


@dataclass
class ChatUserParticipant:
    id: str
    name: Optional[str] = None
    email: Optional[str] = None


@dataclass
class ChatDealershipParticipant:
    id: int
    name: Optional[str] = None
    logo: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None


@dataclass
class ChatMessage:
    """A single message in a conversation. Immutable once created."""
    id: int
    conversation_id: int
    sender_id: str
    sender_role: str
    body: Optional[str]
    created_at: datetime
    media_url: Optional[str] = None
    is_read: bool = False
    read_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        data["read_at"] = self.read_at.isoformat() if self.read_at else None
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatMessage":
        """Create instance from a backend row."""
        return cls(
            id=int(data["id"]),
            conversation_id=int(data["conversation_id"]),
            sender_id=data["sender_id"],
            sender_role=data["sender_role"],
            body=data.get("body"),
            created_at=parse_timestamp(data["created_at"]),
            media_url=data.get("media_url"),
            is_read=bool(data.get("is_read", False)),
            read_at=parse_timestamp(data.get("read_at")),
        )


@dataclass
class Conversation:
    """A chat thread between a user and a dealership or another user."""
    id: int
    user_id: str
    conversation_type: str
    created_at: datetime
    updated_at: datetime
    dealership_id: Optional[int] = None
    seller_user_id: Optional[str] = None
    car_id: Optional[int] = None
    car_rent_id: Optional[int] = None
    number_plate_id: Optional[int] = None
    last_message_at: Optional[datetime] = None
    last_message_preview: Optional[str] = None
    user_unread_count: int = 0
    seller_unread_count: int = 0
    user: Optional[ChatUserParticipant] = None
    dealership: Optional[ChatDealershipParticipant] = None
    seller_user: Optional[ChatUserParticipant] = None

    @property
    def is_user_to_user(self) -> bool:
        return self.conversation_type == ConversationType.USER_USER.value

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Conversation":
        """Create instance from a backend row with optional participant dicts."""
        user = data.get("user")
        dealership = data.get("dealership")
        seller_user = data.get("seller_user")
        return cls(
            id=int(data["id"]),
            user_id=data["user_id"],
            conversation_type=data.get("conversation_type") or ConversationType.USER_DEALER.value,
            created_at=parse_timestamp(data["created_at"]),
            updated_at=parse_timestamp(data["updated_at"]),
            dealership_id=data.get("dealership_id"),
            seller_user_id=data.get("seller_user_id"),
            car_id=data.get("car_id"),
            car_rent_id=data.get("car_rent_id"),
            number_plate_id=data.get("number_plate_id"),
            last_message_at=parse_timestamp(data.get("last_message_at")),
            last_message_preview=data.get("last_message_preview"),
            user_unread_count=data.get("user_unread_count") or 0,
            seller_unread_count=data.get("seller_unread_count") or 0,
            user=ChatUserParticipant(**user) if user else None,
            dealership=ChatDealershipParticipant(**dealership) if dealership else None,
            seller_user=ChatUserParticipant(**seller_user) if seller_user else None,
        )


@dataclass
class MessagePage:
    """One page of messages, oldest first, with the cursor for the next (older) page."""
    messages: List[ChatMessage] = field(default_factory=list)
    next_cursor: Optional[str] = None

    @property
    def has_more(self) -> bool:
        return self.next_cursor is not None


@dataclass
class CreateConversationParams:
    user_id: str
    conversation_type: str = ConversationType.USER_DEALER.value
    dealership_id: Optional[int] = None
    seller_user_id: Optional[str] = None
    car_id: Optional[int] = None
    car_rent_id: Optional[int] = None
    number_plate_id: Optional[int] = None

    def validate(self) -> None:
        """Validate participants and the listing context.

        Exactly one of car_id, car_rent_id or number_plate_id must be set.

        Raises:
            ValueError: describing the first violated rule
        """
        if not self.user_id:
            raise ValueError("user_id must be a non-empty string")

        listing_ids = [self.car_id, self.car_rent_id, self.number_plate_id]
        count = sum(1 for listing_id in listing_ids if listing_id is not None)
        if count > 1:
            raise ValueError(
                "Cannot specify multiple listing types. Provide only one of "
                "car_id, car_rent_id, or number_plate_id."
            )
        if count == 0:
            raise ValueError(
                "Must specify exactly one listing type: car_id, car_rent_id, or number_plate_id."
            )

        if self.conversation_type == ConversationType.USER_DEALER.value:
            if self.dealership_id is None:
                raise ValueError("dealership_id is required for user_dealer conversations")
        elif self.conversation_type == ConversationType.USER_USER.value:
            if not self.seller_user_id:
                raise ValueError("seller_user_id is required for user_user conversations")
            if self.seller_user_id == self.user_id:
                raise ValueError("Cannot chat with yourself")
        else:
            raise ValueError(f"Unknown conversation_type: {self.conversation_type}")
