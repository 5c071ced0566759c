from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from config import CHAT_MODEL, OPENROUTER_MODEL, PIPELINE_VERSION

logger = logging.getLogger(__name__)

GREETING = "GREETING"
META = "META"
IRRELEVANT = "IRRELEVANT"
EDUCATION = "EDUCATION"
FAQ = "FAQ"
GENERAL = "GENERAL"

ROUTE_LABELS = (GREETING, META, IRRELEVANT, EDUCATION, FAQ, GENERAL)
CANNED_ROUTES = (GREETING, META, IRRELEVANT)
DEFAULT_ROUTE = EDUCATION

# ---------------------------------------------------------------------------
# Prompts (versioned with PIPELINE_VERSION; a new prompt means a new version)
# ---------------------------------------------------------------------------

_PRIMARY_PROMPT_V1 = """You are a STRICT request router.

You will be given a CANONICAL INTENT.
Your task is to decide what kind of response the system should produce.

You MUST output EXACTLY ONE of the following labels:
- GREETING
- META
- IRRELEVANT
- EDUCATION
- FAQ
- GENERAL

DO NOT output anything else.
DO NOT explain your decision.

━━━━━━━━━━━━━━━━━━
CORE RULE (MOST IMPORTANT):

If the intent is something a user would want to DO, FIX, USE, HANDLE, TREAT, CLEAN, or PERFORM,
it is FAQ, even if it looks like a topic.

Examples that MUST be FAQ:
- brushing braces properly
- using dental wax
- cleaning aligners
- wire poking cheek
- loose bracket
- pain from braces
- food stuck in braces
- tightening braces

━━━━━━━━━━━━━━━━━━
DEFINITIONS

GREETING
Short greetings only.
Examples: hi, hello, salam, hey

META
Questions about the assistant or the user.
Examples: who are you, what is my name

IRRELEVANT
Not about teeth, braces, or oral health.

EDUCATION
Only when the user wants to understand WHAT something is or WHY it exists.
These are knowledge-only topics with no action or problem implied.

Examples:
- what are braces
- what is an orthodontist
- why braces are used
- types of braces
- how braces work

FAQ
Any braces-related PROBLEM or ACTION.
If the user might expect instructions, steps, fixes, or help → FAQ.

Includes:
- cleaning
- brushing
- pain
- damage
- irritation
- broken parts
- how to use something
- how to fix something

GENERAL
Dental topics not related to orthodontics.
Examples: cavities, implants, veneers, toothache not from braces

━━━━━━━━━━━━━━━━━━
DECISION RULE

If the intent could be answered with steps, tips, or treatment → FAQ
If the intent could be answered with a definition or explanation → EDUCATION

When in doubt → FAQ

━━━━━━━━━━━━━━━━━━

Return ONLY ONE label."""

_SECONDARY_PROMPT_V1 = """You are a STRICT request router for an orthodontic (braces) assistant.
Classify the CANONICAL INTENT with EXACTLY ONE label and nothing else:

GREETING - short salutations (hi, hello, salam)
META - questions about the assistant or the user (who are you, what is my name)
IRRELEVANT - not about teeth, braces, or oral health
EDUCATION - only WHAT something is or WHY it exists (what are braces, types of braces)
FAQ - any braces PROBLEM or ACTION the user wants to DO, FIX, USE, CLEAN, or TREAT (wire poking cheek, brushing braces properly, loose bracket, pain from braces)
GENERAL - dental topics outside orthodontics (cavities, implants, veneers)

Steps, tips, or treatment → FAQ. Definition or explanation → EDUCATION.
When in doubt → FAQ."""


@dataclass(frozen=True)
class RouterPrompts:
    primary: str
    secondary: str


ROUTER_PROMPTS: Dict[int, RouterPrompts] = {
    1: RouterPrompts(primary=_PRIMARY_PROMPT_V1, secondary=_SECONDARY_PROMPT_V1),
}


def get_router_prompts(version: int = PIPELINE_VERSION) -> RouterPrompts:
    try:
        return ROUTER_PROMPTS[version]
    except KeyError:
        raise KeyError(f"No router prompts registered for pipeline version {version}") from None


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------

@dataclass
class ClassifierBackend:
    name: str
    completion: Optional[object]
    model: str
    system_prompt: str
    user_template: str = 'Intent: "{intent}"'


def default_backends(openai_completion, openrouter_completion=None, version: int = PIPELINE_VERSION) -> List[ClassifierBackend]:
    """OpenRouter first (when configured), then OpenAI."""
    prompts = get_router_prompts(version)
    return [
        ClassifierBackend(
            name="openrouter",
            completion=openrouter_completion,
            model=OPENROUTER_MODEL,
            system_prompt=prompts.primary,
            user_template='CANONICAL INTENT: "{intent}"',
        ),
        ClassifierBackend(
            name="openai",
            completion=openai_completion,
            model=CHAT_MODEL,
            system_prompt=prompts.secondary,
        ),
    ]


def parse_label(raw) -> Optional[str]:
    if not isinstance(raw, str):
        return None
    label = raw.strip().upper()
    return label if label in ROUTE_LABELS else None


async def _try_backend(backend: ClassifierBackend, canonical_intent: str) -> Optional[str]:
    if backend.completion is None:
        return None
    try:
        raw = await backend.completion.complete(
            system_prompt=backend.system_prompt,
            user_prompt=backend.user_template.format(intent=canonical_intent),
            model=backend.model,
            temperature=0.1,
            max_tokens=10,
        )
    except Exception as e:
        logger.warning("Router backend %s failed: %s", backend.name, e)
        return None

    label = parse_label(raw)
    if label is None:
        logger.warning("Router backend %s returned unrecognized label: %r", backend.name, raw)
    return label


async def classify_route(canonical_intent: str, backends: Sequence[ClassifierBackend]) -> Optional[str]:
    """Ask each backend in order; the first valid label wins. None when every backend fails."""
    intent = canonical_intent if isinstance(canonical_intent, str) else ""
    for backend in backends:
        label = await _try_backend(backend, intent)
        if label is not None:
            return label
    return None


async def strict_route(
    canonical_intent: str,
    backends: Sequence[ClassifierBackend],
    default: str = DEFAULT_ROUTE,
) -> str:
    """Like classify_route, but falls back to `default`. Never raises."""
    label = await classify_route(canonical_intent, backends)
    if label is None:
        logger.info("All router backends failed, using default route %s", default)
        return default
    return label
