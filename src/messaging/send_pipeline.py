"""
Message send pipeline.

Validates a send locally, performs a single backend insert and reports the
outcome as a result object carrying a user-visible notification. Nothing is
raised to the caller; each send is tracked as pending until it is confirmed
or failed. Confirmed messages are appended to the conversation repository's
cached pages when a repository is given.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Deque, Optional

from src.backend.base import ChatBackend
from src.conversations.models import ChatMessage
from .config import MessagingConfig, config
from .exceptions import ChatError, PreconditionError, SendFailedError

logger = logging.getLogger(__name__)

GENERIC_FAILURE_TEXT = "Try again in a moment."

# Recent send results kept for inspection
HISTORY_SIZE = 50


class SendState(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@dataclass
class Notification:
    """Toast-style message for the user."""
    title: str
    message: str
    level: str = "error"


@dataclass
class SendResult:
    """Outcome of one send attempt."""
    conversation_id: Optional[int]
    body: str
    media_url: Optional[str] = None
    state: SendState = SendState.PENDING
    message: Optional[ChatMessage] = None
    error: Optional[ChatError] = None
    notification: Optional[Notification] = None
    scroll_to_latest: bool = False
    started_at: datetime = field(default_factory=datetime.now)

    @property
    def success(self) -> bool:
        return self.state == SendState.CONFIRMED


class MessageSendPipeline:
    """Sends chat messages to the backend with precondition checks."""

    def __init__(
        self,
        backend: ChatBackend,
        config_override: Optional[MessagingConfig] = None,
        repository=None,
    ):
        """
        Args:
            backend: Backend receiving the insert
            config_override: Optional configuration override
            repository: Optional ConversationRepository whose cached pages
                receive confirmed messages
        """
        self.backend = backend
        self.config = config_override or config
        self.repository = repository
        self.history: Deque[SendResult] = deque(maxlen=HISTORY_SIZE)

    def _check_preconditions(
        self,
        conversation_id: Optional[int],
        sender_id: Optional[str],
        body: str,
        media_url: Optional[str],
    ) -> None:
        if conversation_id is None:
            raise PreconditionError("No conversation selected")
        if not sender_id:
            raise PreconditionError("You must be signed in to send messages")
        if not body and not media_url:
            raise PreconditionError("Message cannot be empty")
        if len(body) > self.config.max_body_length:
            raise PreconditionError(
                f"Message too long ({len(body)} chars, max {self.config.max_body_length})"
            )

    def _describe_sender(self, sender_id: str) -> str:
        return sender_id if self.config.log_participants else "<sender>"

    async def send_message(
        self,
        conversation_id: Optional[int],
        sender_id: Optional[str],
        role: str,
        body: Optional[str],
        media_url: Optional[str] = None,
    ) -> SendResult:
        """
        Send a message in a conversation.

        Args:
            conversation_id: Target conversation
            sender_id: Id of the signed-in sender
            role: Sender role (user, dealer or seller_user)
            body: Message text; surrounding whitespace is trimmed
            media_url: Optional attachment; a send needs text or an attachment

        Returns:
            SendResult in state confirmed or failed
        """
        text = (body or "").strip()
        media_url = (media_url or "").strip() or None
        result = SendResult(conversation_id=conversation_id, body=text, media_url=media_url)
        self.history.append(result)

        try:
            self._check_preconditions(conversation_id, sender_id, text, media_url)
        except PreconditionError as e:
            result.state = SendState.FAILED
            result.error = e
            result.notification = Notification(title="Cannot send message", message=str(e))
            logger.info(f"Send rejected locally: {e}")
            return result

        attachment = " with attachment" if media_url else ""
        if self.config.log_message_content:
            logger.info(
                f"Sending message{attachment} from {self._describe_sender(sender_id)} "
                f"to conversation {conversation_id}: {text}"
            )
        else:
            logger.info(
                f"Sending message{attachment} from {self._describe_sender(sender_id)} "
                f"to conversation {conversation_id} ({len(text)} chars)"
            )

        try:
            row = await self.backend.insert_message(
                conversation_id, sender_id, role, text, media_url=media_url
            )
        except Exception as e:
            detail = str(e) or GENERIC_FAILURE_TEXT
            result.state = SendState.FAILED
            result.error = SendFailedError(detail, cause=e)
            result.notification = Notification(title="Failed to send message", message=detail)
            logger.error(f"Failed to send message to conversation {conversation_id}: {detail}")
            return result

        result.message = ChatMessage.from_dict(row)
        result.state = SendState.CONFIRMED
        result.scroll_to_latest = True
        if self.repository is not None:
            self.repository.append_message(result.message)
        logger.debug(f"Message {result.message.id} confirmed in conversation {conversation_id}")
        return result
