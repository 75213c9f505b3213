"""Remote assistant client using Anthropic Claude models.

The model is asked to answer as a car-shopping assistant and to return a JSON
object with its reply text and the ids of vehicles it recommends.
"""

import asyncio
import json
import logging
import os
from typing import Any, Dict, List, Optional

import anthropic

from .types import AssistantReply, Turn

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a helpful AI car assistant for a vehicle marketplace. Help the user find the right vehicle based on their needs, budget, and preferences. Keep replies friendly and concise. When you recommend specific vehicles from the catalog, include their numeric ids."""

USER_PROMPT_TEMPLATE = """Conversation so far:
{history}

User message:
{message}

Reply in this JSON format:
{{"message": "<your reply>", "car_ids": [<ids of recommended vehicles, possibly empty>]}}"""


class AssistantLLMClient:
    """Generates assistant replies with Anthropic Claude."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "claude-3-5-sonnet-20241022",
        max_tokens: int = 1000,
        temperature: float = 0.7
    ):
        """Initialize the client.

        Args:
            api_key: Anthropic API key. If None, reads from ANTHROPIC_API_KEY env var.
            model: Claude model to use.
            max_tokens: Maximum tokens in response.
            temperature: Sampling temperature (0.0 to 1.0).

        Raises:
            ValueError: If API key is not provided or found in environment.
        """
        self.api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not self.api_key:
            raise ValueError(
                "Anthropic API key required. Provide via api_key parameter "
                "or ANTHROPIC_API_KEY environment variable."
            )

        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.client = anthropic.Anthropic(api_key=self.api_key)

        logger.info(f"Initialized assistant client with model: {model}")

    def format_history(self, history: List[Turn]) -> str:
        if not history:
            return "(No previous messages)"
        lines = []
        for turn in history:
            speaker = "User" if turn.is_user else "Assistant"
            lines.append(f"{speaker}: {turn.text}")
        return "\n".join(lines)

    def _parse_json_response(self, response_text: str) -> Dict[str, Any]:
        """Extract and validate the JSON object in the model output.

        Raises:
            ValueError: If no valid reply object is found
        """
        start_idx = response_text.find('{')
        end_idx = response_text.rfind('}') + 1
        if start_idx == -1 or end_idx == 0:
            raise ValueError("No JSON object found in response")

        try:
            parsed = json.loads(response_text[start_idx:end_idx])
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON response: {e}")

        if not isinstance(parsed.get("message"), str):
            raise ValueError("Missing required field: message")
        car_ids = parsed.get("car_ids") or []
        if not isinstance(car_ids, list):
            raise ValueError("car_ids must be a list")
        parsed["car_ids"] = [int(car_id) for car_id in car_ids]
        return parsed

    def _create(self, user_prompt: str) -> str:
        response = self.client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            system=SYSTEM_PROMPT,
            messages=[{
                "role": "user",
                "content": user_prompt
            }]
        )
        return response.content[0].text

    async def generate_reply(self, message: str, history: List[Turn]) -> AssistantReply:
        """Ask the model for a reply to the user's message.

        Args:
            message: Trimmed user text
            history: Prior turns used as context

        Returns:
            AssistantReply with the reply text and recommended vehicle ids

        Raises:
            anthropic.APIError: If the API call fails
            ValueError: If the model output is malformed
        """
        user_prompt = USER_PROMPT_TEMPLATE.format(
            history=self.format_history(history),
            message=message,
        )

        try:
            response_text = await asyncio.to_thread(self._create, user_prompt)
        except anthropic.APIError as e:
            logger.error(f"Anthropic API error: {e}")
            raise

        logger.debug(f"Raw assistant response: {response_text}")
        parsed = self._parse_json_response(response_text)

        reply = AssistantReply(message=parsed["message"], entity_ids=parsed["car_ids"])
        reply.validate()
        return reply

    def get_model_info(self) -> Dict[str, Any]:
        return {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "provider": "anthropic"
        }
