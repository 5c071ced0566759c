from typing import Any, Dict, List

from config import SUGGESTION_MAX_WORDS


def is_suggestion_candidate(text: str) -> bool:
    return len([w for w in text.split() if w]) <= SUGGESTION_MAX_WORDS


def group_matches(keywords: str, canonical_intent: str) -> bool:
    """A keyword matches when it equals an intent word or appears inside the intent."""
    intent = canonical_intent.lower()
    intent_words = intent.split()
    kws = [k.strip() for k in (keywords or "").lower().split() if k.strip()]
    return any(k in intent_words or k in intent for k in kws)


def collect_chips(groups: List[Dict[str, Any]], canonical_intent: str) -> List[Dict[str, Any]]:
    chips: List[Dict[str, Any]] = []
    for group in groups:
        if group_matches(group.get("keywords"), canonical_intent):
            chips.extend(group.get("chips") or [])
    return chips
