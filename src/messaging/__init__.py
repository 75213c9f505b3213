"""
Messaging module for the marketplace chat core.

This module provides message sending with local precondition checks, the
shared chat error taxonomy and the messaging configuration.
"""

from .send_pipeline import (
    MessageSendPipeline,
    SendResult,
    SendState,
    Notification,
)
from .config import MessagingConfig, load_config
from .exceptions import (
    ChatError,
    NotFoundError,
    TransientError,
    PreconditionError,
    SendFailedError,
)

__all__ = [
    # Message sending
    'MessageSendPipeline',
    'SendResult',
    'SendState',
    'Notification',

    # Configuration
    'MessagingConfig',
    'load_config',

    # Exceptions
    'ChatError',
    'NotFoundError',
    'TransientError',
    'PreconditionError',
    'SendFailedError',
]
