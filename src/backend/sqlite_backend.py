"""SQLite implementation of the chat backend and entity service.

Stands in for the hosted backend in local runs and tests. Timestamps are
stored as UTC ISO8601 strings with microseconds so that lexical order equals
chronological order.
"""

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from src.backend.base import BackendError, ChatBackend, EntityService, decode_cursor
from src.conversations.models import (
    CreateConversationParams,
    SenderRole,
    ViewerRole,
    parse_timestamp,
)
from src.utils.logger_config import get_logger

logger = get_logger(__name__)

ATTACHMENT_PREVIEW = "Sent an attachment"


def format_timestamp(value: Optional[datetime] = None) -> str:
    """Normalize a datetime (default: now) to the stored UTC string format."""
    value = value or datetime.now(timezone.utc)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


class SQLiteChatBackend(ChatBackend, EntityService):
    """Backend over a local SQLite database file"""

    def __init__(self, db_path: str = "./data/chat.db"):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.create_database()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def create_database(self) -> None:
        """Create tables and indexes if they do not exist"""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS users (
                        id TEXT PRIMARY KEY,
                        name TEXT,
                        email TEXT
                    )
                """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS dealerships (
                        id INTEGER PRIMARY KEY,
                        name TEXT,
                        logo TEXT,
                        phone TEXT,
                        location TEXT
                    )
                """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS vehicles (
                        id INTEGER PRIMARY KEY,
                        dealership_id INTEGER,
                        make TEXT NOT NULL,
                        model TEXT NOT NULL,
                        year INTEGER NOT NULL,
                        price INTEGER NOT NULL,
                        status TEXT NOT NULL DEFAULT 'available',
                        images TEXT
                    )
                """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS conversations (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        user_id TEXT NOT NULL,
                        dealership_id INTEGER,
                        seller_user_id TEXT,
                        conversation_type TEXT NOT NULL DEFAULT 'user_dealer',
                        car_id INTEGER,
                        car_rent_id INTEGER,
                        number_plate_id INTEGER,
                        created_at TEXT NOT NULL,
                        updated_at TEXT NOT NULL,
                        last_message_at TEXT,
                        last_message_preview TEXT,
                        user_unread_count INTEGER NOT NULL DEFAULT 0,
                        seller_unread_count INTEGER NOT NULL DEFAULT 0
                    )
                """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS messages (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        conversation_id INTEGER NOT NULL,
                        sender_id TEXT NOT NULL,
                        sender_role TEXT NOT NULL,
                        body TEXT,
                        media_url TEXT,
                        is_read BOOLEAN NOT NULL DEFAULT 0,
                        read_at TEXT,
                        created_at TEXT NOT NULL,
                        FOREIGN KEY (conversation_id) REFERENCES conversations (id) ON DELETE CASCADE
                    )
                """
                )

                cursor.execute(
                    "CREATE INDEX IF NOT EXISTS idx_messages_conversation_created "
                    "ON messages (conversation_id, created_at, id)"
                )
                cursor.execute(
                    "CREATE INDEX IF NOT EXISTS idx_conversations_user ON conversations (user_id)"
                )
        except sqlite3.Error as e:
            logger.error(f"Error creating chat database at {self.db_path}: {e}")
            raise BackendError(f"Could not create chat database: {e}") from e

    # Seeding helpers

    def add_user(self, user_id: str, name: Optional[str] = None, email: Optional[str] = None) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO users (id, name, email) VALUES (?, ?, ?)",
                (user_id, name, email),
            )

    def add_dealership(self, dealership_id: int, name: Optional[str] = None, **details) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO dealerships (id, name, logo, phone, location)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    dealership_id,
                    name,
                    details.get("logo"),
                    details.get("phone"),
                    details.get("location"),
                ),
            )

    def add_vehicle(
        self,
        vehicle_id: int,
        make: str,
        model: str,
        year: int,
        price: int,
        dealership_id: Optional[int] = None,
        status: str = "available",
        images: Optional[List[str]] = None,
    ) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO vehicles
                    (id, dealership_id, make, model, year, price, status, images)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    vehicle_id,
                    dealership_id,
                    make,
                    model,
                    year,
                    price,
                    status,
                    json.dumps(images or []),
                ),
            )

    # Conversations

    def _load_participants(self, conn: sqlite3.Connection, row: sqlite3.Row) -> Dict[str, Any]:
        data = dict(row)

        def user_info(user_id: Optional[str]) -> Optional[Dict[str, Any]]:
            if not user_id:
                return None
            user_row = conn.execute(
                "SELECT id, name, email FROM users WHERE id = ?", (user_id,)
            ).fetchone()
            return dict(user_row) if user_row else None

        data["user"] = user_info(data["user_id"])
        data["seller_user"] = user_info(data.get("seller_user_id"))

        data["dealership"] = None
        if data.get("dealership_id") is not None:
            dealer_row = conn.execute(
                "SELECT id, name, logo, phone, location FROM dealerships WHERE id = ?",
                (data["dealership_id"],),
            ).fetchone()
            data["dealership"] = dict(dealer_row) if dealer_row else None

        return data

    async def get_conversation(self, conversation_id: int) -> Optional[Dict[str, Any]]:
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT * FROM conversations WHERE id = ?", (conversation_id,)
                ).fetchone()
                if row is None:
                    return None
                return self._load_participants(conn, row)
        except sqlite3.Error as e:
            raise BackendError(f"Failed to load conversation {conversation_id}: {e}") from e

    async def list_conversations_for_user(self, user_id: str) -> List[Dict[str, Any]]:
        try:
            with self._connect() as conn:
                rows = conn.execute(
                    """
                    SELECT * FROM conversations
                    WHERE user_id = ? OR seller_user_id = ?
                    ORDER BY last_message_at IS NULL, last_message_at DESC, updated_at DESC
                    """,
                    (user_id, user_id),
                ).fetchall()
                return [self._load_participants(conn, row) for row in rows]
        except sqlite3.Error as e:
            raise BackendError(f"Failed to list conversations for {user_id}: {e}") from e

    async def find_conversation(self, params: CreateConversationParams) -> Optional[int]:
        try:
            with self._connect() as conn:
                row = conn.execute(
                    """
                    SELECT id FROM conversations
                    WHERE user_id = ?
                      AND conversation_type = ?
                      AND dealership_id IS ?
                      AND seller_user_id IS ?
                      AND car_id IS ?
                      AND car_rent_id IS ?
                      AND number_plate_id IS ?
                    ORDER BY id ASC
                    LIMIT 1
                    """,
                    (
                        params.user_id,
                        params.conversation_type,
                        params.dealership_id,
                        params.seller_user_id,
                        params.car_id,
                        params.car_rent_id,
                        params.number_plate_id,
                    ),
                ).fetchone()
                return row["id"] if row else None
        except sqlite3.Error as e:
            raise BackendError(f"Failed to look up conversation: {e}") from e

    async def create_conversation(self, params: CreateConversationParams) -> int:
        now = format_timestamp()
        try:
            with self._connect() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO conversations (
                        user_id, dealership_id, seller_user_id, conversation_type,
                        car_id, car_rent_id, number_plate_id, created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        params.user_id,
                        params.dealership_id,
                        params.seller_user_id,
                        params.conversation_type,
                        params.car_id,
                        params.car_rent_id,
                        params.number_plate_id,
                        now,
                        now,
                    ),
                )
                logger.info(f"Created conversation {cursor.lastrowid} ({params.conversation_type})")
                return cursor.lastrowid
        except sqlite3.Error as e:
            raise BackendError(f"Failed to create conversation: {e}") from e

    # Messages

    async def list_messages(
        self, conversation_id: int, before: Optional[str] = None, limit: int = 40
    ) -> List[Dict[str, Any]]:
        query = "SELECT * FROM messages WHERE conversation_id = ?"
        args: List[Any] = [conversation_id]

        if before:
            timestamp, message_id = decode_cursor(before)
            timestamp = format_timestamp(parse_timestamp(timestamp))
            query += " AND (created_at < ? OR (created_at = ? AND id < ?))"
            args.extend([timestamp, timestamp, message_id])

        query += " ORDER BY created_at DESC, id DESC LIMIT ?"
        args.append(limit)

        try:
            with self._connect() as conn:
                rows = conn.execute(query, args).fetchall()
                return [dict(row) for row in rows]
        except sqlite3.Error as e:
            raise BackendError(f"Failed to list messages for {conversation_id}: {e}") from e

    async def insert_message(
        self,
        conversation_id: int,
        sender_id: str,
        sender_role: str,
        body: Optional[str],
        media_url: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        created = format_timestamp(created_at)
        try:
            with self._connect() as conn:
                exists = conn.execute(
                    "SELECT id FROM conversations WHERE id = ?", (conversation_id,)
                ).fetchone()
                if exists is None:
                    raise BackendError(f"Conversation {conversation_id} does not exist")

                cursor = conn.execute(
                    """
                    INSERT INTO messages (conversation_id, sender_id, sender_role, body, media_url, created_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (conversation_id, sender_id, sender_role, body, media_url, created),
                )
                message_id = cursor.lastrowid

                preview = (body or "").strip() or (ATTACHMENT_PREVIEW if media_url else None)
                # The counterpart of the sender gets the unread increment
                unread_column = (
                    "seller_unread_count" if sender_role == SenderRole.USER.value
                    else "user_unread_count"
                )
                conn.execute(
                    f"""
                    UPDATE conversations
                    SET last_message_at = ?,
                        last_message_preview = ?,
                        updated_at = ?,
                        {unread_column} = {unread_column} + 1
                    WHERE id = ?
                    """,
                    (created, preview, format_timestamp(), conversation_id),
                )

                row = conn.execute("SELECT * FROM messages WHERE id = ?", (message_id,)).fetchone()
                return dict(row)
        except sqlite3.Error as e:
            raise BackendError(f"Failed to insert message: {e}") from e

    async def mark_conversation_read(self, conversation_id: int, viewer_role: str) -> None:
        if viewer_role == ViewerRole.USER.value:
            acknowledged_roles = (SenderRole.DEALER.value, SenderRole.SELLER_USER.value)
            reset_column = "user_unread_count"
        else:
            acknowledged_roles = (SenderRole.USER.value,)
            reset_column = "seller_unread_count"

        now = format_timestamp()
        placeholders = ", ".join("?" for _ in acknowledged_roles)
        try:
            with self._connect() as conn:
                conn.execute(
                    f"""
                    UPDATE messages
                    SET is_read = 1, read_at = ?
                    WHERE conversation_id = ?
                      AND sender_role IN ({placeholders})
                      AND is_read = 0
                    """,
                    (now, conversation_id, *acknowledged_roles),
                )
                conn.execute(
                    f"UPDATE conversations SET {reset_column} = 0, updated_at = ? WHERE id = ?",
                    (now, conversation_id),
                )
        except sqlite3.Error as e:
            raise BackendError(f"Failed to mark conversation {conversation_id} read: {e}") from e

    async def get_user_name_by_id(self, user_id: str) -> Optional[str]:
        try:
            with self._connect() as conn:
                row = conn.execute("SELECT name FROM users WHERE id = ?", (user_id,)).fetchone()
                return row["name"] if row else None
        except sqlite3.Error as e:
            raise BackendError(f"Failed to look up user {user_id}: {e}") from e

    # Entities

    async def get_entity(self, entity_id: int) -> Optional[Dict[str, Any]]:
        try:
            with self._connect() as conn:
                row = conn.execute("SELECT * FROM vehicles WHERE id = ?", (entity_id,)).fetchone()
        except sqlite3.Error as e:
            raise BackendError(f"Failed to load vehicle {entity_id}: {e}") from e

        if row is None:
            return None
        vehicle = dict(row)
        vehicle["images"] = json.loads(vehicle["images"]) if vehicle["images"] else []
        return vehicle
