#!/usr/bin/env python3
"""
Marketplace Chat Core demo script.

Commands:
1. seed          - create a demo database with a dealership, vehicles and a conversation
2. conversations - list a user's conversations with their unread counts
3. history       - page through a conversation, marking it read as the viewer
4. send          - send a message into a conversation
5. assistant     - interactive AI car assistant session

Usage:
    python main.py seed
    python main.py history 1 --user buyer-1
    python main.py assistant
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

from src.utils.load_env import load_env

# Load .env before the config modules read the environment
load_env()

from src.assistant.config import config as assistant_config  # noqa: E402
from src.assistant.entity_cache import EntityPrefetchCache  # noqa: E402
from src.assistant.llm_client import AssistantLLMClient  # noqa: E402
from src.assistant.session import AssistantSessionManager  # noqa: E402
from src.backend.sqlite_backend import SQLiteChatBackend  # noqa: E402
from src.conversations.models import CreateConversationParams, SenderRole  # noqa: E402
from src.conversations.read_tracking import ReadTrackingCoordinator  # noqa: E402
from src.conversations.repository import ConversationRepository, counterpart_display_name  # noqa: E402
from src.messaging import ChatError, MessageSendPipeline  # noqa: E402
from src.messaging.config import config as messaging_config  # noqa: E402
from src.session.lifecycle import AppLifecycleMonitor, AppState  # noqa: E402
from src.storage.kv_store import LocalStore  # noqa: E402
from src.utils.logger_config import get_logger, setup_logging  # noqa: E402

logger = get_logger(__name__)

DEMO_BUYER_ID = "buyer-1"


async def seed_demo_data(backend: SQLiteChatBackend) -> None:
    backend.add_user(DEMO_BUYER_ID, name="Alex Buyer", email="alex@example.com")
    backend.add_dealership(1, name="Downtown Motors", phone="+971500000000", location="Dubai")
    backend.add_vehicle(101, "Toyota", "Land Cruiser", 2022, 245000, dealership_id=1)
    backend.add_vehicle(102, "Nissan", "Patrol", 2021, 199000, dealership_id=1)
    backend.add_vehicle(103, "Kia", "Sportage", 2023, 98000, dealership_id=1)

    repository = ConversationRepository(backend)
    conversation_id = await repository.ensure_conversation(
        CreateConversationParams(user_id=DEMO_BUYER_ID, dealership_id=1, car_id=101)
    )
    await backend.insert_message(conversation_id, DEMO_BUYER_ID, SenderRole.USER.value,
                                 "Is the Land Cruiser still available?")
    await backend.insert_message(conversation_id, "dealer-1", SenderRole.DEALER.value,
                                 "Yes it is! Would you like to book a test drive?")
    print(f"✅ Seeded demo data, conversation id {conversation_id}")


async def list_conversations(backend: SQLiteChatBackend, user_id: str) -> None:
    repository = ConversationRepository(backend)
    conversations = await repository.fetch_conversations_for_user(user_id)
    if not conversations:
        print("No conversations found")
        return
    for conversation in conversations:
        name = counterpart_display_name(conversation, user_id)
        unread = (conversation.seller_unread_count if conversation.seller_user_id == user_id
                  else conversation.user_unread_count)
        preview = conversation.last_message_preview or ""
        print(f"#{conversation.id:<4} {name:<24} unread={unread:<3} {preview}")


async def show_history(backend: SQLiteChatBackend, conversation_id: int, user_id: str,
                       all_pages: bool) -> None:
    repository = ConversationRepository(backend)
    conversation = await repository.fetch_conversation_by_id(conversation_id)
    print(f"💬 {counterpart_display_name(conversation, user_id)}")

    page = await repository.fetch_message_page(conversation_id)
    while all_pages and page.has_more:
        page = await repository.fetch_message_page(conversation_id, cursor=page.next_cursor)

    for message in repository.get_cached_messages(conversation_id):
        who = "You" if message.sender_id == user_id else message.sender_role
        print(f"[{message.created_at:%Y-%m-%d %H:%M}] {who}: {message.body or '(attachment)'}")

    attempt = await ReadTrackingCoordinator(backend).on_focus(conversation, user_id)
    logger.debug(f"Read marking finished in state {attempt.state.value}")


async def send(backend: SQLiteChatBackend, conversation_id: int, user_id: str, role: str,
               body: str, media_url: Optional[str] = None) -> int:
    result = await MessageSendPipeline(backend).send_message(
        conversation_id, user_id, role, body, media_url=media_url
    )
    if not result.success:
        print(f"❌ {result.notification.title}: {result.notification.message}")
        return 1
    print(f"✅ Sent message {result.message.id}")
    return 0


async def run_assistant(backend: SQLiteChatBackend) -> int:
    try:
        llm_client = AssistantLLMClient(
            model=assistant_config.model,
            max_tokens=assistant_config.max_tokens,
            temperature=assistant_config.temperature,
        )
    except ValueError as e:
        print(f"❌ {e}")
        return 1

    session = AssistantSessionManager(
        store=LocalStore(assistant_config.store_path),
        llm_client=llm_client,
        entity_cache=EntityPrefetchCache(backend),
    )
    monitor = AppLifecycleMonitor()
    session.attach(monitor)

    for turn in session.start():
        print(f"{'You' if turn.is_user else '🤖'}: {turn.text}")
    print("\nCommands: /clear, /export, /stats, /quit")

    try:
        while True:
            try:
                text = input("\nYou: ")
            except EOFError:
                break

            command = text.strip().lower()
            if command == "/quit":
                break
            if command == "/clear":
                session.clear()
                print(f"🤖: {session.turns[0].text}")
                continue
            if command == "/export":
                print(session.export_transcript())
                continue
            if command == "/stats":
                print(session.transcript_stats())
                continue

            turn = await session.send_turn(text)
            if turn is None:
                continue
            print(f"🤖: {turn.text}")
            for vehicle in turn.entities:
                print(f"   🚗 #{vehicle['id']} {vehicle['year']} {vehicle['make']} "
                      f"{vehicle['model']} - {vehicle['price']:,}")
    finally:
        monitor.emit(AppState.BACKGROUND)
        session.close()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Marketplace chat core demo")
    parser.add_argument("--db", default=messaging_config.database_path, help="SQLite database path")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("seed", help="Create demo data")

    conversations_parser = subparsers.add_parser("conversations", help="List conversations")
    conversations_parser.add_argument("--user", default=DEMO_BUYER_ID)

    history_parser = subparsers.add_parser("history", help="Show conversation messages")
    history_parser.add_argument("conversation_id", type=int)
    history_parser.add_argument("--user", default=DEMO_BUYER_ID)
    history_parser.add_argument("--all", action="store_true", help="Load every page")

    send_parser = subparsers.add_parser("send", help="Send a message")
    send_parser.add_argument("conversation_id", type=int)
    send_parser.add_argument("body", nargs="?", default="")
    send_parser.add_argument("--media", help="Attachment URL")
    send_parser.add_argument("--user", default=DEMO_BUYER_ID)
    send_parser.add_argument("--role", default=SenderRole.USER.value,
                             choices=[role.value for role in SenderRole])

    subparsers.add_parser("assistant", help="Chat with the AI car assistant")
    return parser


async def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    setup_logging(log_level=logging.DEBUG if args.debug else logging.WARNING)

    backend = SQLiteChatBackend(args.db)
    try:
        if args.command == "seed":
            await seed_demo_data(backend)
        elif args.command == "conversations":
            await list_conversations(backend, args.user)
        elif args.command == "history":
            await show_history(backend, args.conversation_id, args.user, args.all)
        elif args.command == "send":
            return await send(backend, args.conversation_id, args.user, args.role, args.body, args.media)
        elif args.command == "assistant":
            return await run_assistant(backend)
    except ChatError as e:
        print(f"❌ {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
