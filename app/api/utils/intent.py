"""Canonical intent rewriting.

The canonical phrase is cached and embedded. Without the LLM, a word
heuristic over the English query stands in.
"""
import logging
import re

from config import CHAT_MODEL

logger = logging.getLogger(__name__)

MAX_INTENT_LENGTH = 50
FALLBACK_MAX_WORDS = 6

INTENT_SYSTEM_PROMPT = """Rewrite the user's orthodontic question into a short canonical intent phrase.

Rules:
- English only
- 3-6 words maximum
- No punctuation
- No filler words (like "how", "what", "please")
- One clear meaning
- Use standard orthodontic terminology

Examples:
- "my wire stabbing me" → "braces wire poking cheek"
- "taar gaal mein chubh rahi" → "braces wire poking cheek"
- "metal cutting mouth" → "braces wire irritating mouth"
- "how clean braces" → "brushing braces properly"
- "when see orthodontist" → "orthodontist appointment frequency"
- "bracket came off" → "bracket detached loose"

Respond with ONLY the intent phrase, nothing else."""


def normalize_text(text: str) -> str:
    return re.sub(r"\s+", " ", (text or "").lower().strip())


def clean_intent(raw: str) -> str:
    intent = (raw or "").lower()
    intent = re.sub(r"[^\w\s]", "", intent)
    intent = re.sub(r"\s+", " ", intent).strip()
    return intent[:MAX_INTENT_LENGTH]


def fallback_intent(query: str) -> str:
    words = [w for w in normalize_text(query).split(" ") if len(w) > 2]
    return " ".join(words[:FALLBACK_MAX_WORDS])


async def normalize_intent(english_query: str, completion, model: str = CHAT_MODEL) -> str:
    try:
        raw = await completion.complete(
            system_prompt=INTENT_SYSTEM_PROMPT,
            user_prompt=english_query,
            model=model,
            temperature=0.1,
            max_tokens=20,
        )
    except Exception as e:
        logger.warning("Intent rewriting failed, using heuristic fallback: %s", e)
        return fallback_intent(english_query)

    intent = clean_intent(raw)
    if not intent:
        return fallback_intent(english_query)
    return intent
