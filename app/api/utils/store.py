"""Async access to the tables the chat pipeline touches.

The DB drivers are synchronous; every call runs on a worker thread with its
own connection, so concurrent requests never share a cursor.
"""
from __future__ import annotations

import asyncio
import json
from datetime import datetime
from typing import Any, Dict, List, Optional

from database_utils import execute_query, get_placeholder


def now_iso() -> str:
    return datetime.now().isoformat(timespec="microseconds")


def _load_json_list(value) -> list:
    if isinstance(value, list):
        return value
    if not value:
        return []
    try:
        parsed = json.loads(value)
    except (TypeError, ValueError):
        return []
    return parsed if isinstance(parsed, list) else []


class ChatStore:

    # ---- FAQs / media / suggestions (read-only here) -----------------------

    def _list_faqs(self) -> List[Dict[str, Any]]:
        rows = execute_query(
            "SELECT id, question, answer, embedding, media_ids, intent FROM faqs",
            fetch_all=True,
        )
        for row in rows:
            row["media_ids"] = _load_json_list(row.get("media_ids"))
        return rows

    async def list_faqs(self) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(self._list_faqs)

    def _get_faq(self, faq_id: int) -> Optional[Dict[str, Any]]:
        ph = get_placeholder()
        row = execute_query(
            f"SELECT id, question, answer, embedding, media_ids, intent FROM faqs WHERE id = {ph}",
            (faq_id,),
            fetch_one=True,
        )
        if row:
            row["media_ids"] = _load_json_list(row.get("media_ids"))
        return row

    async def get_faq(self, faq_id: int) -> Optional[Dict[str, Any]]:
        return await asyncio.to_thread(self._get_faq, faq_id)

    async def list_media(self) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(
            execute_query, "SELECT id, title, url, type FROM media", (), False, True
        )

    def _list_suggestion_groups(self) -> List[Dict[str, Any]]:
        rows = execute_query(
            "SELECT id, keywords, chips_json FROM suggestions ORDER BY created_at DESC",
            fetch_all=True,
        )
        for row in rows:
            row["chips"] = _load_json_list(row.get("chips_json"))
        return rows

    async def list_suggestion_groups(self) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(self._list_suggestion_groups)

    # ---- Settings ----------------------------------------------------------

    def _get_setting(self, key: str) -> Optional[str]:
        ph = get_placeholder()
        row = execute_query(
            f"SELECT value FROM app_settings WHERE `key` = {ph}", (key,), fetch_one=True
        )
        return row["value"] if row else None

    async def get_setting(self, key: str) -> Optional[str]:
        return await asyncio.to_thread(self._get_setting, key)

    # ---- Message log / cache backing store ---------------------------------

    def _find_cached_decision(self, raw_text: str, pipeline_version: int) -> Optional[Dict[str, Any]]:
        ph = get_placeholder()
        return execute_query(
            f"""
            SELECT id, canonical_intent, route, resolved_faq_id, query_id
            FROM chat_messages
            WHERE sender = 'user'
              AND lower(text) = lower({ph})
              AND pipeline_version = {ph}
              AND route IS NOT NULL
            ORDER BY created_at DESC, id DESC
            LIMIT 1
            """,
            (raw_text, pipeline_version),
            fetch_one=True,
        )

    async def find_cached_decision(self, raw_text: str, pipeline_version: int) -> Optional[Dict[str, Any]]:
        return await asyncio.to_thread(self._find_cached_decision, raw_text, pipeline_version)

    def _latest_user_message_id(self) -> Optional[int]:
        row = execute_query(
            """
            SELECT id FROM chat_messages
            WHERE sender = 'user'
            ORDER BY created_at DESC, id DESC
            LIMIT 1
            """,
            fetch_one=True,
        )
        return row["id"] if row else None

    def _update_decisions(self, message_id: Optional[int], fields: Dict[str, Any]) -> bool:
        if message_id is None:
            message_id = self._latest_user_message_id()
            if message_id is None:
                return False
        ph = get_placeholder()
        set_clause = ", ".join(f"{column} = {ph}" for column in fields)
        _lastrowid, rowcount = execute_query(
            f"UPDATE chat_messages SET {set_clause} WHERE id = {ph} AND sender = 'user'",
            (*fields.values(), message_id),
        )
        return rowcount > 0

    async def update_decisions(self, message_id: Optional[int], **fields) -> bool:
        """Update one user row; without an id, the latest user row is targeted."""
        return await asyncio.to_thread(self._update_decisions, message_id, fields)

    def _insert_message(self, data: Dict[str, Any]) -> int:
        data = {"created_at": now_iso(), **data}
        ph = get_placeholder()
        columns = ", ".join(data)
        placeholders = ", ".join(ph for _ in data)
        lastrowid, _rowcount = execute_query(
            f"INSERT INTO chat_messages ({columns}) VALUES ({placeholders})",
            tuple(data.values()),
        )
        return lastrowid

    async def insert_message(self, **data) -> int:
        return await asyncio.to_thread(self._insert_message, data)
