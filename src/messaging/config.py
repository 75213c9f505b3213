"""
Configuration management for the messaging module.

This module handles configuration for conversation paging and message
sending, including validation and privacy-related logging switches.
"""

import os

from pydantic import BaseModel, Field, field_validator


class MessagingConfig(BaseModel):
    """Configuration model for conversation paging and message sending."""

    # Paging
    page_size: int = Field(
        default=40,
        description="Number of messages fetched per page"
    )

    # Message limits
    max_body_length: int = Field(
        default=4000,
        description="Maximum allowed message body length in characters"
    )

    # Storage
    database_path: str = Field(
        default="./data/chat.db",
        description="Path to the SQLite backend database"
    )

    # Logging settings
    log_message_content: bool = Field(
        default=False,
        description="Whether to log message content (privacy consideration)"
    )

    log_participants: bool = Field(
        default=False,
        description="Whether to log sender ids (privacy consideration)"
    )

    @field_validator('page_size')
    @classmethod
    def validate_page_size(cls, v):
        if v <= 0:
            raise ValueError("page_size must be positive")
        if v > 500:
            raise ValueError("page_size cannot exceed 500")
        return v

    @field_validator('max_body_length')
    @classmethod
    def validate_max_body_length(cls, v):
        if v <= 0:
            raise ValueError("max_body_length must be positive")
        if v > 20000:
            raise ValueError("max_body_length cannot exceed 20000 characters")
        return v


def load_config() -> MessagingConfig:
    """
    Load configuration from environment variables or defaults.

    Environment variables supported:
    - CHAT_PAGE_SIZE: Messages per page
    - CHAT_MAX_BODY_LENGTH: Maximum message body length
    - CHAT_DATABASE_PATH: SQLite backend path
    - CHAT_LOG_CONTENT: Log message content (true/false)
    - CHAT_LOG_PARTICIPANTS: Log sender ids (true/false)

    Returns:
        MessagingConfig: Configured settings instance
    """
    config_data = {}

    if page_size := os.getenv('CHAT_PAGE_SIZE'):
        config_data['page_size'] = int(page_size)

    if max_length := os.getenv('CHAT_MAX_BODY_LENGTH'):
        config_data['max_body_length'] = int(max_length)

    if db_path := os.getenv('CHAT_DATABASE_PATH'):
        config_data['database_path'] = db_path

    if log_content := os.getenv('CHAT_LOG_CONTENT'):
        config_data['log_message_content'] = log_content.lower() == 'true'

    if log_participants := os.getenv('CHAT_LOG_PARTICIPANTS'):
        config_data['log_participants'] = log_participants.lower() == 'true'

    return MessagingConfig(**config_data)


# Global configuration instance
config = load_config()
