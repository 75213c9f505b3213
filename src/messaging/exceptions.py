"""
Custom exceptions for the chat core.

This module defines the error taxonomy shared by the conversation repository,
the message send pipeline and the assistant session.
"""

from typing import Optional


class ChatError(Exception):
    """Base exception for all chat-related errors."""
    pass


class NotFoundError(ChatError):
    """Raised when a requested conversation or entity does not exist."""

    def __init__(self, message: str, resource: Optional[str] = None, resource_id=None):
        super().__init__(message)
        self.resource = resource
        self.resource_id = resource_id


class TransientError(ChatError):
    """Raised when the backend or network fails; the caller may retry."""
    pass


class PreconditionError(ChatError):
    """Raised when input is invalid and the operation is never attempted."""
    pass


class SendFailedError(ChatError):
    """Raised when a message send was attempted and the backend rejected it."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause
