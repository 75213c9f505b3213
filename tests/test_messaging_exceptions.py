"""
Unit tests for the chat exception hierarchy.
"""

import pytest

from src.messaging.exceptions import (
    ChatError,
    NotFoundError,
    TransientError,
    PreconditionError,
    SendFailedError,
)


class TestChatExceptions:
    """Test the chat exception hierarchy."""

    def test_base_chat_error(self):
        error = ChatError("Test error")
        assert str(error) == "Test error"
        assert isinstance(error, Exception)

    def test_exception_inheritance(self):
        for exc_class in [NotFoundError, TransientError, PreconditionError, SendFailedError]:
            error = exc_class("Test error")
            assert isinstance(error, ChatError)
            assert str(error) == "Test error"

    def test_not_found_error_details(self):
        error = NotFoundError("Conversation 7 not found", resource="conversation", resource_id=7)
        assert error.resource == "conversation"
        assert error.resource_id == 7

    def test_send_failed_error_keeps_cause(self):
        cause = RuntimeError("connection reset")
        error = SendFailedError("connection reset", cause=cause)
        assert error.cause is cause

    def test_exceptions_can_be_caught_as_base(self):
        with pytest.raises(ChatError):
            raise PreconditionError("Message cannot be empty")

    def test_package_exports(self):
        import src.messaging as messaging

        for name in ["ChatError", "NotFoundError", "TransientError",
                     "PreconditionError", "SendFailedError", "MessageSendPipeline"]:
            assert name in messaging.__all__
            assert hasattr(messaging, name)
