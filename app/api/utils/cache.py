from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

CACHE_SETTING_KEY = "cache_enabled"


@dataclass(frozen=True)
class CacheDecision:
    """Decisions of a prior completed run. faq_id=None means "searched, no match"."""
    intent: str
    route: str
    faq_id: Optional[int]


class CacheManager:
    """
    Decision cache backed by the chat_messages log.

    Lookups match the raw message case-insensitively (lower(text) = lower(?))
    but are whitespace-sensitive; the caller trims before lookup.
    """

    def __init__(self, store, pipeline_version: int):
        self.store = store
        self.pipeline_version = pipeline_version

    async def is_enabled(self) -> bool:
        try:
            value = await self.store.get_setting(CACHE_SETTING_KEY)
        except Exception as e:
            # fail-open: a settings hiccup must not silently turn caching off
            logger.warning("Reading cache setting failed, defaulting to enabled: %s", e)
            return True
        return value != "false"

    async def read(self, raw_text: str) -> Optional[CacheDecision]:
        try:
            row = await self.store.find_cached_decision(raw_text, self.pipeline_version)
        except Exception as e:
            logger.warning("Cache read failed, treating as miss: %s", e)
            return None

        if not row or not row.get("canonical_intent") or not row.get("route"):
            return None
        faq_id = row.get("resolved_faq_id")
        return CacheDecision(
            intent=row["canonical_intent"],
            route=row["route"],
            faq_id=int(faq_id) if faq_id is not None else None,
        )

    async def write(
        self,
        intent: str,
        route: Optional[str],
        faq_id: Optional[int],
        query_id: Optional[str] = None,
        message_id: Optional[int] = None,
    ) -> bool:
        try:
            return await self.store.update_decisions(
                message_id,
                canonical_intent=intent,
                route=route,
                resolved_faq_id=faq_id,
                pipeline_version=self.pipeline_version,
                query_id=query_id,
            )
        except Exception as e:
            logger.warning("Cache write failed: %s", e)
            return False
