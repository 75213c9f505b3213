"""
AI assistant session manager.

Owns the assistant transcript: restores it from the local store, resets it
when the app looks like it was restarted after a long idle period, sends user
turns to the remote assistant and enriches replies with vehicle details.
Nothing here raises to the caller; failures are logged and turned into
fallback turns or fresh transcripts.
"""

from datetime import datetime
from typing import Callable, List, Optional

from src.session.context import SessionContext
from src.session.lifecycle import AppLifecycleMonitor, AppState
from src.storage.kv_store import LocalStore
from src.utils.logger_config import get_logger

from .config import AssistantConfig, config
from .entity_cache import EntityPrefetchCache
from .types import Turn, TurnOrigin, TranscriptStats, transcript_from_json, transcript_to_json

logger = get_logger(__name__)


def to_epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


class AssistantSessionManager:
    """Local-first assistant session with persisted history."""

    def __init__(
        self,
        store: LocalStore,
        llm_client,
        entity_cache: EntityPrefetchCache,
        config_override: Optional[AssistantConfig] = None,
        context: Optional[SessionContext] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Args:
            store: Local persistence store
            llm_client: Object with an async ``generate_reply(text, history)``
            entity_cache: Per-session vehicle cache
            config_override: Optional configuration override
            context: Session context whose liveness token guards async work
            clock: Source of the current time
        """
        self.store = store
        self.llm_client = llm_client
        self.entity_cache = entity_cache
        self.config = config_override or config
        self.context = context or SessionContext()
        self.clock = clock
        self.turns: List[Turn] = [self._greeting()]
        self._detach: Optional[Callable[[], None]] = None

    def _greeting(self) -> Turn:
        return Turn(
            origin=TurnOrigin.ASSISTANT.value,
            text=self.config.greeting_text,
            timestamp=self.clock(),
        )

    def _reset(self) -> None:
        self.turns = [self._greeting()]

    def _persist(self) -> None:
        self.store.set(self.config.messages_key, transcript_to_json(self.turns))

    @property
    def is_alive(self) -> bool:
        return self.context.is_open

    def restore(self) -> List[Turn]:
        """Load the persisted transcript; any problem yields the greeting-only transcript."""
        raw = self.store.get(self.config.messages_key)
        if raw is None:
            self._reset()
            return self.turns

        try:
            turns = transcript_from_json(raw)
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Error loading chat messages: {e}")
            self._reset()
            return self.turns

        if not turns:
            self._reset()
        else:
            self.turns = turns
        logger.debug(f"Restored {len(self.turns)} assistant turns")
        return self.turns

    def check_termination(self, now: Optional[datetime] = None) -> bool:
        """
        Reset the transcript if the app was idle longer than the threshold.

        A missing or unreadable last-active time counts as a fresh start. The
        last-active time is set to ``now`` afterwards either way.

        Returns:
            True if the transcript was reset
        """
        now = now or self.clock()
        now_ms = to_epoch_ms(now)
        threshold_ms = int(self.config.termination_minutes * 60 * 1000)

        last_active = self.store.get(self.config.last_active_key)
        try:
            last_ms = int(last_active) if last_active is not None else None
        except ValueError:
            logger.warning(f"Ignoring malformed last active time: {last_active!r}")
            last_ms = None

        terminated = last_ms is None or now_ms - last_ms > threshold_ms
        if terminated:
            logger.info("App likely terminated, clearing chat history")
            self._reset()
            self.store.delete(self.config.messages_key)

        self.store.set(self.config.last_active_key, str(now_ms))
        return terminated

    def record_activity(self, now: Optional[datetime] = None) -> None:
        now = now or self.clock()
        self.store.set(self.config.last_active_key, str(to_epoch_ms(now)))

    def start(self) -> List[Turn]:
        """Restore history, then apply the termination check."""
        self.restore()
        self.check_termination()
        return self.turns

    def _on_app_state(self, state: AppState) -> None:
        if not self.is_alive:
            return
        if state == AppState.ACTIVE:
            self.check_termination()
        else:
            self.record_activity()

    def attach(self, monitor: AppLifecycleMonitor) -> None:
        """Follow app lifecycle transitions until the session closes."""
        self.detach()
        self._detach = monitor.subscribe(self._on_app_state)

    def detach(self) -> None:
        if self._detach is not None:
            self._detach()
            self._detach = None

    async def send_turn(self, user_text: str) -> Optional[Turn]:
        """
        Send a user message to the assistant.

        Args:
            user_text: Raw user input; blank input is ignored

        Returns:
            The appended assistant turn (a fallback turn on failure), or None
            when nothing was sent or the session closed mid-flight
        """
        text = (user_text or "").strip()
        if not text or not self.is_alive:
            return None

        history = self.turns[-self.config.context_turns:] if self.config.context_turns else []
        self.turns.append(Turn(origin=TurnOrigin.USER.value, text=text, timestamp=self.clock()))
        self._persist()
        self.record_activity()

        try:
            reply = await self.llm_client.generate_reply(text, history)
            if not self.is_alive:
                logger.debug("Session closed before assistant reply arrived; dropping it")
                return None

            entity_ids = reply.entity_ids[:self.config.max_entities_per_reply]
            entities = await self.entity_cache.resolve_many(
                entity_ids, limit=self.config.max_entities_per_reply
            )
            if not self.is_alive:
                return None

            turn = Turn(
                origin=TurnOrigin.ASSISTANT.value,
                text=reply.message,
                timestamp=self.clock(),
                entity_ids=entity_ids,
                entities=entities,
            )
        except Exception as e:
            logger.error(f"Error getting AI response: {e}")
            if not self.is_alive:
                return None
            turn = Turn(
                origin=TurnOrigin.ASSISTANT.value,
                text=self.config.fallback_text,
                timestamp=self.clock(),
            )

        self.turns.append(turn)
        self._persist()
        return turn

    def clear(self) -> None:
        """Back to the greeting-only transcript with an empty entity cache."""
        self._reset()
        self.entity_cache.clear()
        self.store.delete(self.config.messages_key)
        logger.info("Assistant chat cleared")

    def close(self) -> None:
        """End the session; in-flight replies are discarded when they return."""
        self.detach()
        self.context.close()

    def export_transcript(self) -> str:
        lines = ["AI Car Assistant conversation", ""]
        for turn in self.turns:
            speaker = "You" if turn.is_user else "Assistant"
            lines.append(f"[{turn.timestamp.strftime('%Y-%m-%d %H:%M:%S')}] {speaker}: {turn.text}")
            if turn.entity_ids:
                ids = ", ".join(str(entity_id) for entity_id in turn.entity_ids)
                lines.append(f"    Recommended vehicles: {ids}")
        return "\n".join(lines)

    def transcript_stats(self) -> TranscriptStats:
        user_turns = [turn for turn in self.turns if turn.is_user]
        all_ids = [entity_id for turn in self.turns for entity_id in turn.entity_ids]
        return TranscriptStats(
            total_turns=len(self.turns),
            user_turns=len(user_turns),
            assistant_turns=len(self.turns) - len(user_turns),
            entities_recommended=len(all_ids),
            unique_entity_ids=sorted(set(all_ids)),
            started_at=self.turns[0].timestamp if self.turns else None,
        )
