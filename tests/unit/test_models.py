"""Tests for conversation and message data models."""

from datetime import datetime, timezone

import pytest

from src.conversations.models import (
    ChatMessage,
    Conversation,
    ConversationType,
    CreateConversationParams,
    MessagePage,
    parse_timestamp,
)


class TestParseTimestamp:

    def test_trailing_z(self):
        parsed = parse_timestamp("2024-03-01T10:00:00Z")
        assert parsed == datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)

    def test_passthrough(self):
        now = datetime.now()
        assert parse_timestamp(now) is now
        assert parse_timestamp(None) is None


class TestChatMessage:

    def test_from_dict(self):
        message = ChatMessage.from_dict({
            "id": "5",
            "conversation_id": 2,
            "sender_id": "buyer-1",
            "sender_role": "user",
            "body": "Hello",
            "created_at": "2024-03-01T10:00:00+00:00",
            "is_read": 1,
            "read_at": "2024-03-01T10:05:00+00:00",
        })
        assert message.id == 5
        assert message.is_read is True
        assert message.media_url is None
        assert message.read_at.minute == 5

    def test_to_dict_uses_iso_timestamps(self):
        message = ChatMessage(
            id=1, conversation_id=1, sender_id="u", sender_role="user", body="hi",
            created_at=datetime(2024, 1, 1, 12, 0),
        )
        data = message.to_dict()
        assert data["created_at"] == "2024-01-01T12:00:00"
        assert data["read_at"] is None


class TestConversation:

    def test_from_dict_with_participants(self):
        conversation = Conversation.from_dict({
            "id": 3,
            "user_id": "buyer-1",
            "conversation_type": "user_user",
            "seller_user_id": "seller-1",
            "car_id": 10,
            "created_at": "2024-03-01T10:00:00Z",
            "updated_at": "2024-03-01T10:00:00Z",
            "user": {"id": "buyer-1", "name": "Alex", "email": None},
            "seller_user": {"id": "seller-1", "name": "Sam", "email": None},
            "dealership": None,
        })
        assert conversation.is_user_to_user
        assert conversation.user.name == "Alex"
        assert conversation.seller_user.name == "Sam"
        assert conversation.dealership is None
        assert conversation.user_unread_count == 0

    def test_missing_type_defaults_to_user_dealer(self):
        conversation = Conversation.from_dict({
            "id": 1, "user_id": "u", "conversation_type": None,
            "created_at": "2024-03-01T10:00:00Z", "updated_at": "2024-03-01T10:00:00Z",
        })
        assert conversation.conversation_type == ConversationType.USER_DEALER.value
        assert not conversation.is_user_to_user


class TestMessagePage:

    def test_has_more(self):
        assert MessagePage().has_more is False
        assert MessagePage(next_cursor="2024-01-01T00:00:00.000000+00:00|4").has_more is True


class TestCreateConversationParams:

    def test_valid_user_dealer(self):
        CreateConversationParams(user_id="u", dealership_id=1, car_id=5).validate()

    def test_valid_user_user(self):
        CreateConversationParams(
            user_id="u", conversation_type="user_user", seller_user_id="s", number_plate_id=9
        ).validate()

    def test_multiple_listings_rejected(self):
        params = CreateConversationParams(user_id="u", dealership_id=1, car_id=5, car_rent_id=6)
        with pytest.raises(ValueError, match="Cannot specify multiple listing types"):
            params.validate()

    def test_no_listing_rejected(self):
        with pytest.raises(ValueError, match="Must specify exactly one listing type"):
            CreateConversationParams(user_id="u", dealership_id=1).validate()

    def test_dealer_required(self):
        with pytest.raises(ValueError, match="dealership_id is required"):
            CreateConversationParams(user_id="u", car_id=1).validate()

    def test_cannot_chat_with_yourself(self):
        params = CreateConversationParams(
            user_id="u", conversation_type="user_user", seller_user_id="u", car_id=1
        )
        with pytest.raises(ValueError, match="Cannot chat with yourself"):
            params.validate()

    def test_unknown_type(self):
        with pytest.raises(ValueError, match="Unknown conversation_type"):
            CreateConversationParams(user_id="u", conversation_type="group", car_id=1).validate()
