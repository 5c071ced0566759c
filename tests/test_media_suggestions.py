from api.utils.media import select_education_media, select_media_from_linked_ids
from api.utils.suggestions import collect_chips, group_matches, is_suggestion_candidate

MEDIA = [
    {"id": 1, "url": "https://cdn.example.com/a.png"},
    {"id": 2, "url": "https://cdn.example.com/b.mp4"},
    {"id": 5, "url": "https://cdn.example.com/parts.png"},
    {"id": 6, "url": None},
]


def test_linked_media_keeps_faq_order_and_skips_unknown():
    assert select_media_from_linked_ids([2, 99, 1], MEDIA) == [
        "https://cdn.example.com/b.mp4",
        "https://cdn.example.com/a.png",
    ]


def test_linked_media_empty_inputs():
    assert select_media_from_linked_ids([], MEDIA) == []
    assert select_media_from_linked_ids(None, MEDIA) == []
    assert select_media_from_linked_ids([1], []) == []


def test_education_media_skips_rows_without_url():
    assert select_education_media(MEDIA, [5, 6]) == ["https://cdn.example.com/parts.png"]


def test_suggestion_candidate_word_count():
    assert is_suggestion_candidate("wire")
    assert is_suggestion_candidate("  wire   pain now ")
    assert not is_suggestion_candidate("my wire is poking")


def test_group_matches_words_and_substrings():
    assert group_matches("wire bracket", "braces wire pain")
    assert group_matches("clean", "cleaning braces")
    assert not group_matches("retainer", "braces wire pain")
    assert not group_matches(None, "braces wire pain")


def test_collect_chips_concatenates_matching_groups():
    groups = [
        {"keywords": "wire", "chips": [{"label": "A"}]},
        {"keywords": "food", "chips": [{"label": "B"}]},
        {"keywords": "pain", "chips": [{"label": "C"}]},
    ]
    assert collect_chips(groups, "braces wire pain") == [{"label": "A"}, {"label": "C"}]
