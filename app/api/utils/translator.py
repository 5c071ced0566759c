import logging

from config import CHAT_MODEL

logger = logging.getLogger(__name__)

_TO_LANGUAGE_PROMPTS = {
    "urdu": "Translate into Urdu script.",
    "roman-urdu": "Translate into Roman Urdu (English letters).",
}
_TO_ENGLISH_PROMPT = "Translate to English only."


async def translate(text: str, system_prompt: str, completion, model: str = CHAT_MODEL) -> str:
    """
    One completion call per translation. Best-effort: on any failure the
    original text is returned so the pipeline keeps going.
    """
    try:
        translated = await completion.complete(
            system_prompt=system_prompt,
            user_prompt=text,
            model=model,
        )
    except Exception as e:
        logger.warning("Translation failed (%s): %s", system_prompt, e)
        return text
    translated = (translated or "").strip()
    return translated or text


async def to_english(text: str, source_lang: str, completion) -> str:
    if source_lang == "english":
        return text
    return await translate(text, _TO_ENGLISH_PROMPT, completion)


async def from_english(text: str, target_lang: str, completion) -> str:
    if target_lang == "english":
        return text
    system_prompt = _TO_LANGUAGE_PROMPTS.get(target_lang)
    if system_prompt is None:
        return text
    return await translate(text, system_prompt, completion)
