"""Chat intake pipeline.

Sequential flow per request:

    validate -> cache lookup -> detect language -> translate in -> intent
    -> (short-query suggestions) -> load FAQs/media -> route -> branch
    -> translate out -> persist decisions -> respond

Every upstream call has a fallback, so a response is always produced.
"""
from __future__ import annotations

import asyncio
import json
import logging
import secrets
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, TypeVar

from config import (
    CHAT_MODEL,
    EARLY_RESPONSES,
    EDUCATION_MEDIA_IDS,
    MAX_INPUT_LENGTH,
    PIPELINE_VERSION,
    SAFE_FALLBACKS,
    SUGGESTION_REPLIES,
)
from models.schemas import BotRequest, BotResponse
from api.utils.cache import CacheDecision, CacheManager
from api.utils.faq_search import match_faq
from api.utils.intent import normalize_intent
from api.utils.language import detect_language
from api.utils.media import select_education_media, select_media_from_linked_ids
from api.utils.routing import CANNED_ROUTES, DEFAULT_ROUTE, EDUCATION, FAQ, GENERAL, classify_route
from api.utils.suggestions import collect_chips, is_suggestion_candidate
from api.utils.translator import from_english, to_english

logger = logging.getLogger(__name__)

T = TypeVar("T")

EDUCATION_PROMPT = (
    "You are an expert orthodontic educator. Explain the concept clearly and concisely. "
    "Focus on WHAT it is and WHY it is used. Do not give medical advice."
)
GENERAL_PROMPT = (
    "You are a helpful dental assistant. Answer the general dental question politely. "
    "Mention that you specialize in orthodontics (braces) specifically. Do not give medical diagnosis."
)
FAQ_NO_MATCH_PROMPT = (
    "You are an orthodontic assistant. The user has a braces problem. "
    "Provide a helpful, safe response. Recommend seeing an orthodontist."
)
ANSWER_MAX_TOKENS = 250


class InvalidRequestError(ValueError):
    """Missing or empty required request fields."""


def new_query_id() -> str:
    return f"{int(time.time() * 1000)}-{secrets.token_hex(3)}"


@dataclass(frozen=True)
class Resolved(Generic[T]):
    """A pipeline value and whether it came from the cache or was computed now."""
    kind: str  # "cached" | "computed" | "fallback"
    value: T

    @property
    def cached(self) -> bool:
        return self.kind == "cached"


def cached(value: T) -> Resolved[T]:
    return Resolved("cached", value)


def computed(value: T) -> Resolved[T]:
    return Resolved("computed", value)


def fallback(value: T) -> Resolved[T]:
    return Resolved("fallback", value)


class PipelineTrace:
    """Per-request diagnostic trace, returned to the client as pipelineLogs."""

    def __init__(self):
        self.lines: List[str] = []

    def __call__(self, msg: str) -> None:
        self.lines.append(msg)
        logger.info(msg)


@dataclass
class Answer:
    text: str
    media_urls: List[str] = field(default_factory=list)
    faq: Optional[Dict[str, Any]] = None
    # canned/fallback strings are already in the user's language
    localized: bool = False
    # FAQ decision came from the similarity fallback, not the LLM pick
    faq_fallback: bool = False


class ChatPipeline:
    def __init__(
        self,
        completion,
        embedder,
        store,
        router_backends,
        *,
        pipeline_version: int = PIPELINE_VERSION,
        max_input_length: int = MAX_INPUT_LENGTH,
        education_media_ids: Optional[List[int]] = None,
        model: str = CHAT_MODEL,
    ):
        self.completion = completion
        self.embedder = embedder
        self.store = store
        self.router_backends = router_backends
        self.pipeline_version = pipeline_version
        self.max_input_length = max_input_length
        self.education_media_ids = EDUCATION_MEDIA_IDS if education_media_ids is None else education_media_ids
        self.model = model
        self.cache = CacheManager(store, pipeline_version)

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def run(self, request: BotRequest) -> BotResponse:
        if not request.message or not request.userName:
            raise InvalidRequestError("message and userName are required")

        trace = PipelineTrace()
        query_id = new_query_id()

        trimmed = request.message.strip()
        if not trimmed:
            return BotResponse(text=SAFE_FALLBACKS["english"], queryId=query_id, pipelineLogs=trace.lines)
        text = trimmed[: self.max_input_length]

        if request.suggestionFaqId is not None:
            resp = await self._answer_suggestion_click(request.suggestionFaqId, text, query_id, trace)
            if resp is not None:
                return resp

        # Cache lookup; short queries always run fresh so their suggestions stay current
        cache_enabled = await self.cache.is_enabled()
        trace(f"[CACHE] Status: {'ENABLED' if cache_enabled else 'DISABLED'}")
        short_query = is_suggestion_candidate(text)
        decision: Optional[CacheDecision] = None
        if cache_enabled and short_query:
            trace("[CACHE] BYPASS - Suggestion candidate, computing fresh values")
        elif cache_enabled:
            decision = await self.cache.read(text)
            trace("[CACHE] HIT - Reusing intent/route/FAQ decision" if decision else "[CACHE] MISS - Computing fresh values")

        # Language + translation (never cached)
        language = detect_language(text)
        trace(f"[PIPELINE] Language detected: {language}")
        english_query = await to_english(text, language, self.completion)
        if language != "english":
            trace(f"[PIPELINE] Translated to English: {english_query}")

        intent = await self._resolve_intent(decision, english_query, trace)

        if short_query:
            resp = await self._suggestions_reply(intent.value, language, query_id, request.messageId, cache_enabled, trace)
            if resp is not None:
                return resp

        faqs, media = await asyncio.gather(self.store.list_faqs(), self.store.list_media())

        route = await self._resolve_route(decision, intent.value, trace)

        answer = await self._branch(route.value, decision, intent.value, english_query, language, faqs, media, trace)

        if route.value not in CANNED_ROUTES and language != "english" and not answer.localized:
            trace(f"[PIPELINE] Translating answer back to {language}")
            answer.text = await from_english(answer.text, language, self.completion)

        faq_id = answer.faq["id"] if answer.faq else None
        trace(f"[PIPELINE_DONE] QueryId: {query_id} | Route: {route.value} | Media: {len(answer.media_urls)}")

        if cache_enabled and (route.kind == "fallback" or answer.faq_fallback):
            # an outage default must not be replayed as a trusted decision
            trace("[CACHE] Skipped write - decision came from a fallback")
        elif cache_enabled:
            written = await self.cache.write(intent.value, route.value, faq_id, query_id, request.messageId)
            trace("[CACHE] Stored pipeline decisions" if written else "[CACHE] No message row updated")

        return BotResponse(
            text=answer.text,
            mediaUrls=answer.media_urls,
            faqId=faq_id,
            queryId=query_id,
            pipelineLogs=trace.lines,
        )

    # ------------------------------------------------------------------
    # Resolution steps
    # ------------------------------------------------------------------

    async def _resolve_intent(self, decision: Optional[CacheDecision], english_query: str, trace) -> Resolved[str]:
        if decision is not None:
            trace(f"[PIPELINE] Using CACHED Intent: {decision.intent}")
            return cached(decision.intent)
        intent = await normalize_intent(english_query, self.completion, self.model)
        trace(f"[PIPELINE] Computed intent: {intent}")
        return computed(intent)

    async def _resolve_route(self, decision: Optional[CacheDecision], intent: str, trace) -> Resolved[str]:
        if decision is not None:
            trace(f"[PIPELINE] Using CACHED Route: {decision.route}")
            return cached(decision.route)
        route = await classify_route(intent, self.router_backends)
        if route is None:
            trace(f"[PIPELINE] All router backends failed, default route {DEFAULT_ROUTE}")
            return fallback(DEFAULT_ROUTE)
        trace(f"[PIPELINE] Computed Route: {route}")
        return computed(route)

    async def _resolve_faq(self, decision: Optional[CacheDecision], intent: str, faqs, trace) -> Resolved[Optional[Dict[str, Any]]]:
        if decision is not None:
            if decision.faq_id is None:
                # previous run searched and found nothing; do not search again
                trace("[PIPELINE] Using CACHED result: NO FAQ matched previously")
                return cached(None)
            faq = next((f for f in faqs if f.get("id") == decision.faq_id), None)
            if faq is not None:
                trace(f"[PIPELINE] Using CACHED FAQ ID: {decision.faq_id}")
                return cached(faq)
            trace("[PIPELINE] Cached FAQ ID not found in current DB, re-running search")

        match = await match_faq(intent, faqs, self.embedder, self.completion, trace=trace)
        if match.faq is not None:
            trace(f"[PIPELINE] FAQ matched: {match.faq.get('id')}")
        else:
            trace("[PIPELINE] No FAQ match - generating answer with LLM")
        return fallback(match.faq) if match.fallback else computed(match.faq)

    # ------------------------------------------------------------------
    # Branches
    # ------------------------------------------------------------------

    async def _branch(self, route, decision, intent, english_query, language, faqs, media, trace) -> Answer:
        if route in CANNED_ROUTES:
            return Answer(text=EARLY_RESPONSES[route].get(language, EARLY_RESPONSES[route]["english"]), localized=True)

        if route == EDUCATION:
            answer = await self._generate(EDUCATION_PROMPT, f'Explain this concept: "{intent}"', language, trace)
            answer.media_urls = select_education_media(media, self.education_media_ids)
            if answer.media_urls:
                trace("[PIPELINE] Attached educational media (parts/diagrams)")
            return answer

        if route == GENERAL:
            return await self._generate(GENERAL_PROMPT, english_query, language, trace)

        if route == FAQ:
            faq = await self._resolve_faq(decision, intent, faqs, trace)
            if faq.value is not None:
                return Answer(
                    text=faq.value["answer"],
                    media_urls=select_media_from_linked_ids(faq.value.get("media_ids"), media),
                    faq=faq.value,
                    faq_fallback=faq.kind == "fallback",
                )
            answer = await self._generate(FAQ_NO_MATCH_PROMPT, english_query, language, trace)
            answer.faq_fallback = faq.kind == "fallback"
            return answer

        trace(f"[PIPELINE] Unknown route {route!r}, using safe fallback")
        return Answer(text=SAFE_FALLBACKS.get(language, SAFE_FALLBACKS["english"]), localized=True)

    async def _generate(self, system_prompt: str, user_prompt: str, language: str, trace) -> Answer:
        try:
            text = await self.completion.complete(
                system_prompt=system_prompt,
                user_prompt=user_prompt,
                model=self.model,
                max_tokens=ANSWER_MAX_TOKENS,
            )
        except Exception as e:
            logger.warning("Answer generation failed: %s", e)
            trace(f"[PIPELINE] Answer generation failed: {e}")
            text = ""
        if not text or not text.strip():
            return Answer(text=SAFE_FALLBACKS.get(language, SAFE_FALLBACKS["english"]), localized=True)
        return Answer(text=text.strip())

    # ------------------------------------------------------------------
    # Suggestion chips
    # ------------------------------------------------------------------

    async def _answer_suggestion_click(self, faq_id: int, text: str, query_id: str, trace) -> Optional[BotResponse]:
        trace(f"[PIPELINE] Suggestion Click Detected: FAQ ID {faq_id}")
        faq, media = await asyncio.gather(self.store.get_faq(faq_id), self.store.list_media())
        if not faq:
            trace("[PIPELINE] Suggested FAQ not found, continuing with full pipeline")
            return None

        language = detect_language(text)
        answer = await from_english(faq["answer"], language, self.completion)
        media_urls = select_media_from_linked_ids(faq.get("media_ids"), media)

        try:
            await self.store.insert_message(
                query_id=query_id,
                sender="user",
                text=text,
                canonical_intent=f"SUGGESTION_CLICK:{faq_id}",
                route=FAQ,
                resolved_faq_id=faq_id,
                pipeline_version=self.pipeline_version,
            )
            await self.store.insert_message(
                query_id=query_id,
                sender="bot",
                text=answer,
                media_urls=json.dumps(media_urls, ensure_ascii=False),
                resolved_faq_id=faq_id,
                pipeline_version=self.pipeline_version,
            )
        except Exception as e:
            logger.warning("Failed to log suggestion click messages: %s", e)
            trace(f"[SUGGESTION_CLICK] Failed to log messages: {e}")

        return BotResponse(text=answer, mediaUrls=media_urls, faqId=faq_id, queryId=query_id, pipelineLogs=trace.lines)

    async def _suggestions_reply(self, intent: str, language: str, query_id: str, message_id, cache_enabled: bool, trace) -> Optional[BotResponse]:
        try:
            groups = await self.store.list_suggestion_groups()
            chips = collect_chips(groups, intent)
        except Exception as e:
            trace(f"[SUGGESTIONS] Error in suggestion logic: {e}")
            return None
        if not chips:
            return None

        trace(f"[SUGGESTIONS] Returning {len(chips)} suggestions")
        if cache_enabled:
            # route stays NULL so this row never serves as a cache hit
            await self.cache.write(intent, None, None, query_id, message_id)
        return BotResponse(
            text=SUGGESTION_REPLIES.get(language, SUGGESTION_REPLIES["english"]),
            faqId=None,
            queryId=query_id,
            pipelineLogs=trace.lines,
            suggestions=chips,
        )
