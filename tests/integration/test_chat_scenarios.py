"""End-to-end scenarios across the store, backend, repository and assistant session."""

import json
import tempfile
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest

from src.assistant.config import GREETING_TEXT
from src.assistant.entity_cache import EntityPrefetchCache
from src.assistant.session import AssistantSessionManager
from src.assistant.types import AssistantReply
from src.backend.sqlite_backend import SQLiteChatBackend
from src.conversations.models import CreateConversationParams
from src.conversations.read_tracking import ReadState, ReadTrackingCoordinator
from src.conversations.repository import ConversationRepository
from src.messaging.exceptions import PreconditionError
from src.messaging.send_pipeline import MessageSendPipeline
from src.session.lifecycle import AppLifecycleMonitor, AppState
from src.storage.kv_store import LocalStore


class Clock:
    def __init__(self, start):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class TestAssistantScenarios:

    def setup_method(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        base = Path(self.temp_dir.name)
        self.store = LocalStore(str(base / "store.db"))
        self.backend = SQLiteChatBackend(str(base / "chat.db"))
        self.backend.add_vehicle(101, "Toyota", "Land Cruiser", 2022, 245000)
        self.backend.add_vehicle(102, "Nissan", "Patrol", 2021, 199000)
        self.llm_client = Mock()
        self.llm_client.generate_reply = AsyncMock(
            return_value=AssistantReply(message="Here are two SUVs", entity_ids=[101, 102])
        )
        self.clock = Clock(datetime(2024, 5, 1, 12, 0))

    def teardown_method(self):
        self.temp_dir.cleanup()

    def _session(self):
        return AssistantSessionManager(
            store=self.store,
            llm_client=self.llm_client,
            entity_cache=EntityPrefetchCache(self.backend),
            clock=self.clock,
        )

    @pytest.mark.asyncio
    async def test_first_run_send_persists_three_turns(self):
        session = self._session()
        assert [t.text for t in session.restore()] == [GREETING_TEXT]

        await session.send_turn("find SUVs")

        persisted = json.loads(self.store.get("ai_chat_messages"))
        assert [turn["origin"] for turn in persisted] == ["assistant", "user", "assistant"]
        assert persisted[1]["text"] == "find SUVs"
        assert persisted[2]["entity_ids"] == [101, 102]
        for turn in persisted:
            assert datetime.fromisoformat(turn["timestamp"]) == self.clock.now

        # A new session restores the same transcript
        restored = self._session().restore()
        assert [t.text for t in restored] == [t.text for t in session.turns]

    @pytest.mark.asyncio
    async def test_background_for_40_minutes_clears_history(self):
        session = self._session()
        monitor = AppLifecycleMonitor()
        session.attach(monitor)
        session.start()

        await session.send_turn("find SUVs")
        await session.send_turn("cheaper please")
        assert len(json.loads(self.store.get("ai_chat_messages"))) == 5

        monitor.emit(AppState.BACKGROUND)
        self.clock.advance(minutes=40)
        monitor.emit(AppState.ACTIVE)

        assert [t.text for t in session.turns] == [GREETING_TEXT]
        assert self.store.get("ai_chat_messages") is None

    @pytest.mark.asyncio
    async def test_short_background_keeps_history(self):
        session = self._session()
        monitor = AppLifecycleMonitor()
        session.attach(monitor)
        session.start()
        await session.send_turn("find SUVs")

        monitor.emit(AppState.BACKGROUND)
        self.clock.advance(minutes=10)
        monitor.emit(AppState.ACTIVE)

        assert len(session.turns) == 3


class TestConversationScenarios:

    def setup_method(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.backend = SQLiteChatBackend(str(Path(self.temp_dir.name) / "chat.db"))
        self.backend.add_user("buyer-1", name="Alex Buyer")
        self.backend.add_user("seller-1", name="Sam Seller")
        self.repository = ConversationRepository(self.backend)
        self.pipeline = MessageSendPipeline(self.backend)
        self.reader = ReadTrackingCoordinator(self.backend)

    def teardown_method(self):
        self.temp_dir.cleanup()

    @pytest.mark.asyncio
    async def test_empty_body_is_rejected_without_insert(self):
        conversation_id = await self.repository.ensure_conversation(
            CreateConversationParams(user_id="buyer-1", conversation_type="user_user",
                                     seller_user_id="seller-1", car_id=5)
        )

        result = await self.pipeline.send_message(conversation_id, "buyer-1", "user", "   ")

        assert isinstance(result.error, PreconditionError)
        assert await self.backend.list_messages(conversation_id) == []

    @pytest.mark.asyncio
    async def test_user_to_user_round_trip(self):
        params = CreateConversationParams(user_id="buyer-1", conversation_type="user_user",
                                          seller_user_id="seller-1", car_id=5)
        conversation_id = await self.repository.ensure_conversation(params)
        assert await self.repository.ensure_conversation(params) == conversation_id

        sent = await self.pipeline.send_message(conversation_id, "buyer-1", "user", "Is it available?")
        assert sent.success
        reply = await self.pipeline.send_message(conversation_id, "seller-1", "seller_user", "Yes!")
        assert reply.success

        # Seller opens the conversation
        conversation = await self.repository.fetch_conversation_by_id(conversation_id)
        attempt = await self.reader.on_focus(conversation, "seller-1")
        assert attempt.state == ReadState.DONE

        page = await self.repository.fetch_message_page(conversation_id)
        assert [m.body for m in page.messages] == ["Is it available?", "Yes!"]
        assert page.messages[0].is_read is True
        assert page.messages[1].is_read is False

        conversation = await self.repository.fetch_conversation_by_id(conversation_id)
        assert conversation.seller_unread_count == 0
        assert conversation.user_unread_count == 1
        assert conversation.last_message_preview == "Yes!"

    @pytest.mark.asyncio
    async def test_sent_messages_join_the_open_conversation(self):
        conversation_id = await self.repository.ensure_conversation(
            CreateConversationParams(user_id="buyer-1", conversation_type="user_user",
                                     seller_user_id="seller-1", car_id=5)
        )
        await self.pipeline.send_message(conversation_id, "buyer-1", "user", "Hello")
        await self.repository.fetch_message_page(conversation_id)
        pipeline = MessageSendPipeline(self.backend, repository=self.repository)

        photo = await pipeline.send_message(
            conversation_id, "seller-1", "seller_user", "", media_url="https://cdn.example.com/car.jpg"
        )

        assert photo.success
        cached = self.repository.get_cached_messages(conversation_id)
        assert [m.body for m in cached] == ["Hello", ""]
        assert cached[-1].media_url == "https://cdn.example.com/car.jpg"
        conversation = await self.repository.fetch_conversation_by_id(conversation_id)
        assert conversation.last_message_preview == "Sent an attachment"
