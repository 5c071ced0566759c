from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from config import CHAT_MODEL, FAQ_FALLBACK_THRESHOLD, FAQ_TOP_N

logger = logging.getLogger(__name__)

Candidate = Tuple[Dict[str, Any], float]  # (faq row, similarity)


class FaqMatch(NamedTuple):
    faq: Optional[Dict[str, Any]]
    candidates: List[Candidate]
    # True when the LLM pick failed and the similarity threshold decided
    fallback: bool = False


# ----------------------------------------------------------------------------
# Similarity
# ----------------------------------------------------------------------------

def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """0.0 for empty, mismatched or zero vectors; never NaN."""
    if a is None or b is None or len(a) == 0 or len(b) == 0 or len(a) != len(b):
        return 0.0
    va = np.asarray(a, dtype="float64")
    vb = np.asarray(b, dtype="float64")
    denominator = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denominator == 0.0 or not np.isfinite(denominator):
        return 0.0
    score = float(np.dot(va, vb) / denominator)
    return score if np.isfinite(score) else 0.0


def parse_embedding(value) -> List[float]:
    """FAQ embeddings are stored as JSON text; accept lists too."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8", errors="ignore")
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError:
            return []
        return parsed if isinstance(parsed, list) else []
    return []

# ----------------------------------------------------------------------------
# Step A: recall
# ----------------------------------------------------------------------------

def rank_faqs(intent_embedding: Sequence[float], faqs: Sequence[Dict[str, Any]], top_n: int = FAQ_TOP_N) -> List[Candidate]:
    """Top-N FAQs by cosine similarity. No threshold here; the LLM filters precision."""
    ranked = [
        (faq, cosine_similarity(intent_embedding, parse_embedding(faq.get("embedding"))))
        for faq in faqs
    ]
    ranked.sort(key=lambda item: item[1], reverse=True)
    return ranked[:top_n]

# ----------------------------------------------------------------------------
# Step B: precision
# ----------------------------------------------------------------------------

def _selection_prompt(canonical_intent: str) -> str:
    return f"""You are selecting the best FAQ for a user's intent.

USER INTENT:
"{canonical_intent}"

Your job is to match the FAQ that MOST DIRECTLY answers the intent.

STRICT MATCHING RULES:

1. MATCH SPECIFICITY (CRITICAL):
   - General intent (e.g., "pain", "discomfort") → MUST match a General FAQ.
   - Do NOT infer a specific cause (like "wire", "bracket") if the user did not say it.
   - Specific intent (e.g., "wire poking") → MUST match that specific cause.

2. Match INTENT FORM:
   - Question intent → explanatory FAQs
   - Problem intent → diagnostic/descriptive FAQs
   - Action intent → how-to/remedy FAQs

3. If multiple FAQs mention the same topic:
   → Choose the one whose intent FORM matches the user's intent FORM.

4. Higher similarity does NOT override intent mismatch.

If no FAQ clearly matches, respond "NONE".

Respond with ONLY the FAQ number or "NONE"."""


def parse_selection(raw, candidate_count: int) -> Optional[int]:
    """Zero-based index of the chosen candidate, or None for NONE/garbage/out of range."""
    result = (raw or "").strip().upper() if isinstance(raw, str) else ""
    if not result or result == "NONE":
        return None
    m = re.match(r"^(\d+)", result)
    if not m:
        return None
    index = int(m.group(1)) - 1
    if 0 <= index < candidate_count:
        return index
    return None


async def select_best_faq(canonical_intent: str, candidates: Sequence[Candidate], completion, model: str = CHAT_MODEL):
    """Raises on completion failure; match_faq owns the fallback."""
    if not candidates:
        return None

    faq_list = "\n".join(f"{i}. {faq.get('intent')}" for i, (faq, _score) in enumerate(candidates, 1))
    raw = await completion.complete(
        system_prompt=_selection_prompt(canonical_intent),
        user_prompt=f"FAQ options:\n{faq_list}",
        model=model,
        temperature=0.1,
        max_tokens=10,
    )
    index = parse_selection(raw, len(candidates))
    return candidates[index][0] if index is not None else None


def _threshold_fallback(candidates: Sequence[Candidate], threshold: float):
    if candidates and candidates[0][1] > threshold:
        return candidates[0][0]
    return None


async def match_faq(
    canonical_intent: str,
    faqs: Sequence[Dict[str, Any]],
    embedder,
    completion,
    *,
    top_n: int = FAQ_TOP_N,
    threshold: float = FAQ_FALLBACK_THRESHOLD,
    trace=None,
) -> FaqMatch:
    """
    Embed the intent, rank stored FAQs, let the LLM pick one (or none).
    """
    log = trace or (lambda msg: logger.info(msg))
    if not faqs:
        log("[FAQ] No FAQs available")
        return FaqMatch(None, [])

    candidates: List[Candidate] = []
    try:
        log("[PIPELINE] Embedding canonical intent")
        intent_embedding = await embedder.embed(canonical_intent)
        candidates = rank_faqs(intent_embedding, faqs, top_n)
        for i, (faq, score) in enumerate(candidates, 1):
            log(f'[PIPELINE] Candidate #{i}: ID={faq.get("id")} Score={score:.4f} Intent="{faq.get("intent")}"')
        selected = await select_best_faq(canonical_intent, candidates, completion)
    except Exception as e:
        logger.warning("FAQ matching failed, using similarity threshold fallback: %s", e)
        log(f"[FAQ] Matching failed, threshold fallback: {e}")
        return FaqMatch(_threshold_fallback(candidates, threshold), candidates, fallback=True)

    return FaqMatch(selected, candidates)
