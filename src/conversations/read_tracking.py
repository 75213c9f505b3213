"""
Read-receipt coordination for an open conversation.

Each focus event of the conversation screen runs one marking attempt through
an explicit state machine. Marking is best effort: failures are logged and
never surface to the caller.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from src.backend.base import ChatBackend
from src.conversations.models import Conversation, ConversationType, ViewerRole
from src.utils.logger_config import get_logger

logger = get_logger(__name__)

# Profile role allowed to write read markers
READER_PROFILE_ROLE = "user"


class ReadState(str, Enum):
    IDLE = "idle"
    DETERMINING_ROLE = "determining_role"
    MARKING = "marking"
    DONE = "done"
    FAILED = "failed"


def resolve_viewer_role(conversation: Conversation, current_user_id: str) -> ViewerRole:
    """The seller of a user-to-user conversation reads as seller_user; everyone else as user."""
    if (
        conversation.conversation_type == ConversationType.USER_USER.value
        and conversation.seller_user_id == current_user_id
    ):
        return ViewerRole.SELLER_USER
    return ViewerRole.USER


@dataclass
class ReadAttempt:
    conversation_id: Optional[int]
    state: ReadState = ReadState.IDLE
    viewer_role: Optional[ViewerRole] = None
    error: Optional[str] = None


class ReadTrackingCoordinator:
    """Marks the counterpart's messages read whenever a conversation gains focus."""

    def __init__(self, backend: ChatBackend):
        self.backend = backend
        self.last_attempt: Optional[ReadAttempt] = None

    async def on_focus(
        self,
        conversation: Optional[Conversation],
        current_user_id: Optional[str],
        profile_role: Optional[str] = READER_PROFILE_ROLE,
    ) -> ReadAttempt:
        """
        Run one marking attempt.

        Skipped (state stays idle) when the conversation or user is not loaded
        or the profile role is not a reader. Every focus re-runs the attempt;
        the backend update is idempotent.

        Returns:
            The finished attempt
        """
        attempt = ReadAttempt(conversation_id=conversation.id if conversation else None)
        self.last_attempt = attempt

        if conversation is None or not current_user_id or profile_role != READER_PROFILE_ROLE:
            logger.debug("Skipping read marking: conversation, user or reader role missing")
            return attempt

        attempt.state = ReadState.DETERMINING_ROLE
        attempt.viewer_role = resolve_viewer_role(conversation, current_user_id)

        attempt.state = ReadState.MARKING
        try:
            await self.backend.mark_conversation_read(conversation.id, attempt.viewer_role.value)
        except Exception as e:
            attempt.state = ReadState.FAILED
            attempt.error = str(e)
            logger.warning(f"Failed to mark conversation {conversation.id} as read: {e}")
            return attempt

        attempt.state = ReadState.DONE
        logger.debug(
            f"Marked conversation {conversation.id} read as {attempt.viewer_role.value}"
        )
        return attempt
