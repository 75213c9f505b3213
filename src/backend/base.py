"""Interfaces to the backend data service and the entity detail service.

The chat core only needs get-by-id, paged-list-ordered-by-time, insert and an
idempotent update-by-key. Row shapes are plain dictionaries matching
``Conversation.from_dict`` and ``ChatMessage.from_dict``.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from src.conversations.models import CreateConversationParams


class BackendError(Exception):
    """Raised by backend implementations when a query or write fails."""
    pass


def encode_cursor(created_at: datetime, message_id: int) -> str:
    """Pagination cursor pointing just past the oldest message of a page.

    The id breaks ties between messages sharing a timestamp.
    """
    return f"{created_at.isoformat(timespec='microseconds')}|{message_id}"


def decode_cursor(cursor: str) -> Tuple[str, int]:
    """Split a cursor into its timestamp and message id.

    Raises:
        ValueError: If the cursor is malformed
    """
    timestamp, sep, message_id = cursor.rpartition("|")
    if not sep or not timestamp:
        raise ValueError(f"Malformed pagination cursor: {cursor!r}")
    return timestamp, int(message_id)


class ChatBackend(ABC):
    """Conversations and messages collections plus the read/send RPCs."""

    @abstractmethod
    async def get_conversation(self, conversation_id: int) -> Optional[Dict[str, Any]]:
        """Conversation row with participant info, or None."""

    @abstractmethod
    async def list_conversations_for_user(self, user_id: str) -> List[Dict[str, Any]]:
        """Conversations the user takes part in, most recent activity first."""

    @abstractmethod
    async def find_conversation(self, params: CreateConversationParams) -> Optional[int]:
        """Id of an existing conversation for the same participants and listing."""

    @abstractmethod
    async def create_conversation(self, params: CreateConversationParams) -> int:
        """Insert a conversation and return its id."""

    @abstractmethod
    async def list_messages(
        self, conversation_id: int, before: Optional[str] = None, limit: int = 40
    ) -> List[Dict[str, Any]]:
        """Messages strictly older than the ``before`` cursor, newest first."""

    @abstractmethod
    async def insert_message(
        self,
        conversation_id: int,
        sender_id: str,
        sender_role: str,
        body: Optional[str],
        media_url: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Insert a message and return the stored row."""

    @abstractmethod
    async def mark_conversation_read(self, conversation_id: int, viewer_role: str) -> None:
        """Mark the counterpart's messages read and reset the viewer's unread count."""

    @abstractmethod
    async def get_user_name_by_id(self, user_id: str) -> Optional[str]:
        """Display name lookup used when participant info is missing."""


class EntityService(ABC):
    """Detail lookup for entities referenced by assistant replies (vehicles)."""

    @abstractmethod
    async def get_entity(self, entity_id: int) -> Optional[Dict[str, Any]]:
        """Entity payload, or None when it does not exist."""
