from typing import Any, Dict, Iterable, List, Optional


def _urls(media_rows: Iterable[Dict[str, Any]]) -> List[str]:
    return [m["url"] for m in media_rows if isinstance(m.get("url"), str) and m.get("url")]


def select_media_from_linked_ids(media_ids: Optional[List[int]], media: List[Dict[str, Any]]) -> List[str]:
    """URLs for an FAQ's linked media, in the FAQ's own order."""
    if not media_ids or not media:
        return []
    by_id = {m.get("id"): m for m in media}
    return _urls(by_id[mid] for mid in media_ids if mid in by_id)


def select_education_media(media: List[Dict[str, Any]], education_ids: List[int]) -> List[str]:
    wanted = set(education_ids)
    return _urls(m for m in media if m.get("id") in wanted)
