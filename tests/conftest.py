"""
Shared fixtures: a throwaway SQLite database and scripted LLM fakes.
"""
import json

import pytest

import database_utils
from api.utils.pipeline import ChatPipeline
from api.utils.routing import default_backends
from api.utils.store import ChatStore, now_iso


class FakeCompletion:
    """
    Scripted completion service. Each call is classified by its system prompt
    and answered from the matching attribute; kinds listed in `fail` raise.
    """

    def __init__(self):
        self.english = {}  # non-English text -> English
        self.intents = {}  # English query -> raw intent reply
        self.routes = {}  # canonical intent -> router label
        self.default_route = "FAQ"
        self.selection = "1"
        self.answer = "Generated answer"
        self.fail = set()
        self.calls = []

    @staticmethod
    def kind_of(system_prompt: str) -> str:
        if system_prompt.startswith("Translate to English"):
            return "to_english"
        if system_prompt.startswith("Translate into Urdu script"):
            return "to_urdu"
        if system_prompt.startswith("Translate into Roman Urdu"):
            return "to_roman_urdu"
        if system_prompt.startswith("Rewrite the user's orthodontic question"):
            return "intent"
        if "STRICT request router" in system_prompt:
            return "route"
        if "selecting the best FAQ" in system_prompt:
            return "select"
        return "answer"

    def count(self, kind: str) -> int:
        return sum(1 for k, _s, _u in self.calls if k == kind)

    async def complete(self, *, system_prompt, user_prompt, model=None, temperature=None, max_tokens=None):
        kind = self.kind_of(system_prompt)
        self.calls.append((kind, system_prompt, user_prompt))
        if kind in self.fail:
            raise RuntimeError(f"{kind} backend down")

        if kind == "to_english":
            return self.english.get(user_prompt, user_prompt)
        if kind == "to_urdu":
            return f"[ur] {user_prompt}"
        if kind == "to_roman_urdu":
            return f"[ru] {user_prompt}"
        if kind == "intent":
            return self.intents.get(user_prompt, user_prompt)
        if kind == "route":
            intent = user_prompt.split('"')[1] if '"' in user_prompt else user_prompt
            return self.routes.get(intent, self.default_route)
        if kind == "select":
            return self.selection
        return self.answer


class FakeEmbedder:
    def __init__(self, vectors=None, default=(1.0, 0.0, 0.0)):
        self.vectors = vectors or {}
        self.default = list(default)
        self.calls = []
        self.fail = False

    async def embed(self, text):
        self.calls.append(text)
        if self.fail:
            raise RuntimeError("embedding backend down")
        return list(self.vectors.get(text, self.default))


@pytest.fixture
def db(tmp_path, monkeypatch):
    monkeypatch.setattr(database_utils, "DB_BACKEND", "sqlite")
    monkeypatch.setattr(database_utils, "SQLITE_PATH", str(tmp_path / "test.db"))
    database_utils.init_schema()
    return database_utils


@pytest.fixture
def store(db):
    return ChatStore()


@pytest.fixture
def completion():
    return FakeCompletion()


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def pipeline(store, completion, embedder):
    return ChatPipeline(
        completion=completion,
        embedder=embedder,
        store=store,
        router_backends=default_backends(completion, None),
        education_media_ids=[5, 6],
    )


def add_faq(faq_id, intent, answer, embedding=(1.0, 0.0, 0.0), media_ids=None):
    database_utils.execute_query(
        "INSERT INTO faqs (id, question, answer, intent, embedding, media_ids, created_at) VALUES (?, ?, ?, ?, ?, ?, ?)",
        (
            faq_id,
            intent,
            answer,
            intent,
            json.dumps(list(embedding)) if embedding is not None else None,
            json.dumps(media_ids or []),
            now_iso(),
        ),
    )


def add_media(media_id, url, title="", media_type="image"):
    database_utils.execute_query(
        "INSERT INTO media (id, title, url, type) VALUES (?, ?, ?, ?)",
        (media_id, title, url, media_type),
    )


def add_user_message(text):
    lastrowid, _ = database_utils.execute_query(
        "INSERT INTO chat_messages (sender, text, created_at) VALUES ('user', ?, ?)",
        (text, now_iso()),
    )
    return lastrowid


def get_message(message_id):
    return database_utils.execute_query(
        "SELECT * FROM chat_messages WHERE id = ?", (message_id,), fetch_one=True
    )


def set_setting(key, value):
    database_utils.execute_query(
        "INSERT OR REPLACE INTO app_settings (`key`, value) VALUES (?, ?)", (key, value)
    )
