import re
from typing import Literal

Language = Literal["english", "urdu", "roman-urdu"]

# Arabic block, which covers the Urdu script
_URDU_SCRIPT_RE = re.compile(r"[\u0600-\u06FF]")

ROMAN_URDU_KEYWORDS = [
    "kaise", "kya", "kyu", "hai", "hain", "chahiye", "kitne", "mein", "aap", "ko", "ki", "ke",
]
_ROMAN_URDU_PATTERNS = [re.compile(rf"\b{kw}\b", re.IGNORECASE) for kw in ROMAN_URDU_KEYWORDS]
ROMAN_URDU_MIN_HITS = 2


def detect_language(text) -> Language:
    """Script first, then Roman-Urdu keyword count; everything else is English."""
    if not text or not isinstance(text, str):
        return "english"

    if _URDU_SCRIPT_RE.search(text):
        return "urdu"

    normalized = text.lower()
    hits = sum(1 for pattern in _ROMAN_URDU_PATTERNS if pattern.search(normalized))
    if hits >= ROMAN_URDU_MIN_HITS:
        return "roman-urdu"

    return "english"
