"""
Conversation repository.

Reads conversations and paged message history from the backend and keeps a
per-conversation cache of the pages fetched so far.
"""

from typing import Dict, List, Optional, Tuple

from src.backend.base import ChatBackend, decode_cursor, encode_cursor
from src.conversations.models import (
    ChatMessage,
    ChatUserParticipant,
    Conversation,
    ConversationType,
    CreateConversationParams,
    MessagePage,
)
from src.messaging.config import MessagingConfig, config
from src.messaging.exceptions import ChatError, NotFoundError, PreconditionError, TransientError
from src.utils.logger_config import get_logger

logger = get_logger(__name__)

DEFAULT_DEALER_NAME = "Dealer"
DEFAULT_USER_NAME = "User"


class ConversationRepository:
    """Conversation metadata and paginated messages from the backend."""

    def __init__(self, backend: ChatBackend, config_override: Optional[MessagingConfig] = None):
        self.backend = backend
        self.config = config_override or config
        # conversation id -> (cursor, page) pairs, newest page first
        self._page_cache: Dict[int, List[Tuple[Optional[str], MessagePage]]] = {}

    async def fetch_conversation_by_id(self, conversation_id: int) -> Conversation:
        """
        Load a conversation with participant display info.

        Args:
            conversation_id: Conversation to load

        Returns:
            The conversation

        Raises:
            NotFoundError: If no conversation has this id
            TransientError: If the backend call fails
        """
        try:
            row = await self.backend.get_conversation(conversation_id)
        except Exception as e:
            logger.error(f"Error fetching conversation {conversation_id}: {e}")
            raise TransientError(f"Failed to load conversation {conversation_id}: {e}") from e

        if row is None:
            raise NotFoundError(
                f"Conversation {conversation_id} not found",
                resource="conversation",
                resource_id=conversation_id,
            )

        conversation = Conversation.from_dict(row)

        if conversation.user is None or not conversation.user.name:
            await self._fill_user_name(conversation)

        return conversation

    async def _fill_user_name(self, conversation: Conversation) -> None:
        try:
            name = await self.backend.get_user_name_by_id(conversation.user_id)
        except Exception as e:
            logger.warning(f"Could not resolve name for user of conversation {conversation.id}: {e}")
            return

        if not name:
            return
        if conversation.user is None:
            conversation.user = ChatUserParticipant(id=conversation.user_id, name=name)
        else:
            conversation.user.name = name

    async def fetch_message_page(
        self, conversation_id: int, cursor: Optional[str] = None
    ) -> MessagePage:
        """
        Fetch one page of messages, oldest first.

        A call without a cursor is a full refresh and replaces the cached pages
        for the conversation. A call with a cursor caches an older page;
        fetching the same cursor again replaces that page instead of adding it twice.

        Raises:
            PreconditionError: If the cursor is malformed
            TransientError: If the backend call fails
        """
        if cursor is not None:
            try:
                decode_cursor(cursor)
            except ValueError as e:
                raise PreconditionError(str(e)) from e

        page_size = self.config.page_size
        try:
            rows = await self.backend.list_messages(conversation_id, before=cursor, limit=page_size)
        except Exception as e:
            logger.error(f"Error fetching messages for conversation {conversation_id}: {e}")
            raise TransientError(f"Failed to load messages: {e}") from e

        messages = [ChatMessage.from_dict(row) for row in reversed(rows)]

        next_cursor = None
        if len(messages) == page_size:
            oldest = messages[0]
            next_cursor = encode_cursor(oldest.created_at, oldest.id)

        page = MessagePage(messages=messages, next_cursor=next_cursor)

        if cursor is None:
            self._page_cache[conversation_id] = [(None, page)]
        else:
            pages = self._page_cache.setdefault(conversation_id, [])
            for index, (cached_cursor, _) in enumerate(pages):
                if cached_cursor == cursor:
                    pages[index] = (cursor, page)
                    break
            else:
                pages.append((cursor, page))

        logger.debug(
            f"Fetched {len(messages)} messages for conversation {conversation_id} "
            f"(has_more={page.has_more})"
        )
        return page

    def get_cached_messages(self, conversation_id: int) -> List[ChatMessage]:
        """All cached messages of a conversation in chronological order."""
        pages = self._page_cache.get(conversation_id, [])
        messages: List[ChatMessage] = []
        for _, page in reversed(pages):
            messages.extend(page.messages)
        return messages

    def append_message(self, message: ChatMessage) -> bool:
        """
        Add a confirmed message to the newest cached page of its conversation.

        Returns:
            True if the message was added; False when nothing is cached for the
            conversation or the message is already there
        """
        pages = self._page_cache.get(message.conversation_id)
        if not pages:
            return False
        if any(cached.id == message.id for _, page in pages for cached in page.messages):
            return False
        pages[0][1].messages.append(message)
        return True

    async def fetch_conversations_for_user(self, user_id: str) -> List[Conversation]:
        """Conversations the user takes part in, most recently active first."""
        try:
            rows = await self.backend.list_conversations_for_user(user_id)
        except Exception as e:
            logger.error(f"Error listing conversations: {e}")
            raise TransientError(f"Failed to load conversations: {e}") from e

        conversations = [Conversation.from_dict(row) for row in rows]
        conversations.sort(
            key=lambda c: (
                c.last_message_at is not None,
                c.last_message_at.timestamp() if c.last_message_at else 0.0,
                c.updated_at.timestamp(),
            ),
            reverse=True,
        )
        return conversations

    async def ensure_conversation(self, params: CreateConversationParams) -> int:
        """
        Return the id of the conversation for these participants and listing,
        creating it when none exists.

        Raises:
            PreconditionError: If the participants or listing context are invalid
            TransientError: If the backend call fails
        """
        try:
            params.validate()
        except ValueError as e:
            raise PreconditionError(str(e)) from e

        try:
            existing = await self.backend.find_conversation(params)
            if existing is not None:
                return existing
            conversation_id = await self.backend.create_conversation(params)
        except ChatError:
            raise
        except Exception as e:
            logger.error(f"Error ensuring conversation: {e}")
            raise TransientError(f"Failed to start conversation: {e}") from e

        logger.info(f"Started {params.conversation_type} conversation {conversation_id}")
        return conversation_id


def counterpart_display_name(conversation: Conversation, current_user_id: Optional[str]) -> str:
    """Name shown in the conversation header for the other party."""
    if conversation.conversation_type == ConversationType.USER_DEALER.value:
        if conversation.dealership and conversation.dealership.name:
            return conversation.dealership.name
        return DEFAULT_DEALER_NAME

    if current_user_id and current_user_id == conversation.seller_user_id:
        other = conversation.user
    else:
        other = conversation.seller_user
    if other and other.name:
        return other.name
    return DEFAULT_USER_NAME
