import pytest
from fastapi.testclient import TestClient

from config import SAFE_FALLBACKS
from main import app
from api.routes import chat
from conftest import add_faq


@pytest.fixture
def client(pipeline):
    app.dependency_overrides[chat.get_pipeline] = lambda: pipeline
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_chat_returns_faq_answer(client, completion):
    add_faq(1, "brushing braces properly", "Brush after every meal.")
    completion.intents["How should I brush my braces"] = "brushing braces properly"
    res = client.post("/chat", json={"message": "How should I brush my braces", "userName": "amna"})
    assert res.status_code == 200
    body = res.json()
    assert body["text"] == "Brush after every meal."
    assert body["faqId"] == 1
    assert body["mediaUrls"] == []
    assert isinstance(body["pipelineLogs"], list)
    assert "suggestions" not in body


def test_faq_id_null_when_unmatched(client, completion):
    completion.routes["hello"] = "GREETING"
    body = client.post("/chat", json={"message": "hello", "userName": "amna"}).json()
    assert "faqId" in body and body["faqId"] is None


@pytest.mark.parametrize(
    "payload",
    [
        {"userName": "amna"},
        {"message": "hello"},
        {"message": "", "userName": "amna"},
        {"message": 12, "userName": "amna"},
    ],
)
def test_missing_or_invalid_fields(client, payload):
    res = client.post("/chat", json=payload)
    assert res.status_code == 400
    assert "error" in res.json()


def test_malformed_json(client):
    res = client.post("/chat", content=b"{not json", headers={"content-type": "application/json"})
    assert res.status_code == 400
    assert "error" in res.json()


def test_non_object_body(client):
    res = client.post("/chat", json=["hello"])
    assert res.status_code == 400


def test_missing_api_key_returns_safe_payload(db, monkeypatch):
    monkeypatch.setattr("api.utils.llm.OPENAI_API_KEY", None)
    chat.get_llm_services.cache_clear()
    app.dependency_overrides.clear()
    res = TestClient(app).post("/chat", json={"message": "hello", "userName": "amna"})
    assert res.status_code == 500
    body = res.json()
    assert body["error"]
    assert body["text"] == SAFE_FALLBACKS["english"]
    assert body["faqId"] is None
    assert body["mediaUrls"] == []


def test_unexpected_failure_returns_safe_payload(client, pipeline, monkeypatch):
    async def boom(*args, **kwargs):
        raise RuntimeError("db down")

    monkeypatch.setattr(pipeline.store, "list_faqs", boom)
    res = client.post("/chat", json={"message": "My wire is poking my cheek badly", "userName": "amna"})
    assert res.status_code == 500
    assert res.json()["text"] == SAFE_FALLBACKS["english"]


@pytest.fixture
def fake_keys(monkeypatch):
    monkeypatch.setattr("api.utils.llm.OPENAI_API_KEY", "sk-test")
    monkeypatch.setattr("api.utils.llm.OPENROUTER_API_KEY", "or-test")
    chat.get_llm_services.cache_clear()
    yield
    chat.get_llm_services.cache_clear()


@pytest.mark.asyncio
async def test_llm_clients_are_shared_and_closed(fake_keys):
    first = chat.get_pipeline()
    second = chat.get_pipeline()
    assert first is not second
    assert first.completion is second.completion
    assert first.embedder is second.embedder
    assert first.router_backends[0].completion is second.router_backends[0].completion

    openai_client = first.completion._client
    openrouter_client = first.router_backends[0].completion._client
    assert not openai_client.is_closed()

    await chat.close_llm_services()
    assert openai_client.is_closed()
    assert openrouter_client.is_closed()
    assert chat.get_llm_services.cache_info().currsize == 0


def test_app_shutdown_closes_llm_clients(fake_keys):
    app.dependency_overrides.clear()
    with TestClient(app):
        client = chat.get_pipeline().completion._client
    assert client.is_closed()
    assert chat.get_llm_services.cache_info().currsize == 0
