"""
Configuration management for the AI assistant session.

Holds the termination threshold, context window, entity cap, persistence keys
and model settings.
"""

import os

from pydantic import BaseModel, Field, field_validator

GREETING_TEXT = (
    "Hi there! 👋 I'm your AI car assistant. I'll help you find the perfect vehicle "
    "based on your needs, budget, and preferences. What can I help you with today?"
)

FALLBACK_TEXT = (
    "I apologize, but I'm having trouble connecting right now. Please try again in a moment."
)


class AssistantConfig(BaseModel):
    """Configuration model for the assistant session."""

    # Session lifetime
    termination_minutes: float = Field(
        default=30,
        description="Minutes of inactivity after which the transcript is reset"
    )

    # Context and enrichment
    context_turns: int = Field(
        default=10,
        description="Number of prior turns sent to the remote assistant"
    )

    max_entities_per_reply: int = Field(
        default=8,
        description="Maximum number of vehicles resolved per assistant reply"
    )

    # Texts
    greeting_text: str = Field(
        default=GREETING_TEXT,
        description="Opening assistant turn of every fresh transcript"
    )

    fallback_text: str = Field(
        default=FALLBACK_TEXT,
        description="Assistant turn appended when the remote call fails"
    )

    # Persistence
    messages_key: str = Field(
        default="ai_chat_messages",
        description="Local store key of the persisted transcript"
    )

    last_active_key: str = Field(
        default="last_active_time",
        description="Local store key of the last activity time (epoch ms)"
    )

    store_path: str = Field(
        default="./data/local_store.db",
        description="Path to the local persistence store"
    )

    # Model settings
    model: str = Field(
        default="claude-3-5-sonnet-20241022",
        description="Anthropic model used for assistant replies"
    )

    max_tokens: int = Field(
        default=1000,
        description="Maximum tokens per assistant reply"
    )

    temperature: float = Field(
        default=0.7,
        description="Sampling temperature"
    )

    @field_validator('termination_minutes')
    @classmethod
    def validate_termination_minutes(cls, v):
        if v <= 0:
            raise ValueError("termination_minutes must be positive")
        return v

    @field_validator('context_turns', 'max_entities_per_reply')
    @classmethod
    def validate_non_negative(cls, v):
        if v < 0:
            raise ValueError("value cannot be negative")
        return v

    @field_validator('temperature')
    @classmethod
    def validate_temperature(cls, v):
        if not 0.0 <= v <= 1.0:
            raise ValueError("temperature must be between 0.0 and 1.0")
        return v


def load_config() -> AssistantConfig:
    """
    Load configuration from environment variables or defaults.

    Environment variables supported:
    - ASSISTANT_TERMINATION_MINUTES: Inactivity threshold in minutes
    - ASSISTANT_CONTEXT_TURNS: Prior turns sent as context
    - ASSISTANT_MAX_ENTITIES: Vehicles resolved per reply
    - ASSISTANT_STORE_PATH: Local persistence store path
    - ASSISTANT_MODEL: Anthropic model name

    Returns:
        AssistantConfig: Configured settings instance
    """
    config_data = {}

    if minutes := os.getenv('ASSISTANT_TERMINATION_MINUTES'):
        config_data['termination_minutes'] = float(minutes)

    if context_turns := os.getenv('ASSISTANT_CONTEXT_TURNS'):
        config_data['context_turns'] = int(context_turns)

    if max_entities := os.getenv('ASSISTANT_MAX_ENTITIES'):
        config_data['max_entities_per_reply'] = int(max_entities)

    if store_path := os.getenv('ASSISTANT_STORE_PATH'):
        config_data['store_path'] = store_path

    if model := os.getenv('ASSISTANT_MODEL'):
        config_data['model'] = model

    return AssistantConfig(**config_data)


# Global configuration instance
config = load_config()
