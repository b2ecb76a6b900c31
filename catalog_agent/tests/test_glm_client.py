import pytest

from catalog_agent.providers.glm_client import GlmClient
from catalog_agent.domain.exceptions import ApiError
from catalog_agent.domain.models import ChatRequest, ChatMessage


class SettingsStub:
    glm_api_key = "g"
    http_timeout = 1.0
    glm_base_url = "https://open.bigmodel.cn/api/paas/v4"


def _install(monkeypatch, body, status_code=200, captured=None):
    class Resp:
        text = "server exploded"

        def __init__(self):
            self.status_code = status_code

        def json(self):
            return body

    class Client:
        def __init__(self, *a, **kw):
            pass

        def __enter__(self):
            return self

        def __exit__(self, *a):
            return False

        def post(self, url, json=None, **_):
            if captured is not None:
                captured.update(url=url, payload=json)
            return Resp()

    monkeypatch.setattr("httpx.Client", Client)


def test_glm_client_basic(monkeypatch):
    gc = GlmClient(SettingsStub())
    req = ChatRequest(provider="glm", model="catalog-chat", messages=[ChatMessage(role="user", content="hi")])
    captured = {}
    _install(monkeypatch, {
        "choices": [{"index": 0, "message": {"role": "assistant", "content": "ok"}, "finish_reason": "stop"}],
        "usage": {"prompt_tokens": 1, "completion_tokens": 1, "total_tokens": 2},
    }, captured=captured)
    res = gc.chat(req)
    assert res.choices[0].message.content == "ok"
    assert captured["url"] == "https://open.bigmodel.cn/api/paas/v4/chat/completions"
    assert captured["payload"]["model"] == "glm-4.6"
    assert "tools" not in captured["payload"]


def test_glm_client_legacy_function_call(monkeypatch):
    gc = GlmClient(SettingsStub())
    req = ChatRequest(provider="glm", model="catalog-chat", messages=[ChatMessage(role="user", content="hi")])
    _install(monkeypatch, {
        "choices": [
            {
                "message": {
                    "role": "assistant",
                    "content": None,
                    "function_call": {"name": "find_item", "arguments": '{"sku": "WH-001"}'},
                }
            }
        ]
    })
    msg = gc.chat(req).message
    assert msg.content == ""
    assert msg.tool_calls[0].name == "find_item"
    assert msg.tool_calls[0].arguments == {"sku": "WH-001"}


def test_glm_client_api_error(monkeypatch):
    gc = GlmClient(SettingsStub())
    req = ChatRequest(provider="glm", model="catalog-chat", messages=[ChatMessage(role="user", content="hi")])
    _install(monkeypatch, {}, status_code=500)
    with pytest.raises(ApiError) as exc:
        gc.chat(req)
    assert exc.value.http_status == 500
    assert exc.value.message == "server exploded"
