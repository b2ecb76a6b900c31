import pytest

from catalog_agent.providers.anthropic_client import AnthropicClient
from catalog_agent.domain.cancellation import CancellationToken
from catalog_agent.domain.exceptions import MalformedResponseError, OperationCancelled
from catalog_agent.domain.models import ChatRequest, ChatMessage
from catalog_agent.tools.catalog_tools import catalog_tool_defs
from catalog_agent.tools.definitions import ToolCall


class SettingsStub:
    anthropic_api_key = "a-key-long-enough"
    anthropic_base_url = "https://api.anthropic.com/v1"
    anthropic_version = "2023-06-01"
    http_timeout = 1.0


def _install(monkeypatch, body, captured=None):
    class Resp:
        status_code = 200
        text = ""

        def json(self):
            return body

    class Client:
        def __init__(self, *a, **kw):
            pass

        def __enter__(self):
            return self

        def __exit__(self, *a):
            return False

        def post(self, url, json=None, headers=None, **_):
            if captured is not None:
                captured.update(url=url, payload=json, headers=headers)
            return Resp()

    monkeypatch.setattr("httpx.Client", Client)


def test_anthropic_payload_shape(monkeypatch):
    ac = AnthropicClient(SettingsStub())
    captured = {}
    _install(monkeypatch, {"content": [{"type": "text", "text": "done"}]}, captured=captured)
    history = [
        ChatMessage(role="system", content="You manage a catalog."),
        ChatMessage(role="user", content="show lamp and desk"),
        ChatMessage(
            role="assistant",
            content="Looking.",
            tool_calls=[
                ToolCall(id="tu1", name="find_item", arguments={"name": "Lamp"}),
                ToolCall(id="tu2", name="find_item", arguments={"name": "Desk"}),
            ],
        ),
        ChatMessage(role="tool", content="{}", tool_call_id="tu1"),
        ChatMessage(role="tool", content="No items found with name 'Desk'", tool_call_id="tu2"),
    ]
    req = ChatRequest(
        provider="anthropic",
        model="catalog-chat",
        messages=history,
        max_tokens=512,
        tools=catalog_tool_defs(),
    )
    ac.chat(req)

    payload = captured["payload"]
    assert captured["url"] == "https://api.anthropic.com/v1/messages"
    assert captured["headers"]["x-api-key"] == "a-key-long-enough"
    assert captured["headers"]["anthropic-version"] == "2023-06-01"
    assert payload["system"] == "You manage a catalog."
    assert payload["max_tokens"] == 512
    assert payload["model"] == "claude-3-5-haiku-latest"
    assert payload["tool_choice"] == {"type": "auto"}
    assert payload["tools"][0]["input_schema"]["type"] == "object"

    messages = payload["messages"]
    assert [m["role"] for m in messages] == ["user", "assistant", "user"]
    assert messages[1]["content"][1] == {
        "type": "tool_use",
        "id": "tu1",
        "name": "find_item",
        "input": {"name": "Lamp"},
    }
    results = messages[2]["content"]
    assert [b["tool_use_id"] for b in results] == ["tu1", "tu2"]
    assert all(b["type"] == "tool_result" for b in results)


def test_anthropic_parse_tool_use(monkeypatch):
    ac = AnthropicClient(SettingsStub())
    _install(monkeypatch, {
        "content": [
            {"type": "text", "text": "Creating it now."},
            {
                "type": "tool_use",
                "id": "toolu_01",
                "name": "create_item",
                "input": {"name": "X", "description": "D", "price": 10, "sku": "K1"},
            },
        ],
        "stop_reason": "tool_use",
        "usage": {"input_tokens": 12, "output_tokens": 5},
    })
    req = ChatRequest(provider="anthropic", model="catalog-chat", messages=[ChatMessage(role="user", content="hi")])
    res = ac.chat(req)
    assert res.message.content == "Creating it now."
    call = res.message.tool_calls[0]
    assert (call.id, call.name, call.arguments["sku"]) == ("toolu_01", "create_item", "K1")
    assert res.choices[0].finish_reason == "tool_use"
    assert res.usage.total_tokens == 17


def test_anthropic_malformed_response(monkeypatch):
    ac = AnthropicClient(SettingsStub())
    _install(monkeypatch, {"type": "error"})
    req = ChatRequest(provider="anthropic", model="catalog-chat", messages=[ChatMessage(role="user", content="hi")])
    with pytest.raises(MalformedResponseError):
        ac.chat(req)


def test_anthropic_cancelled_before_send(monkeypatch):
    ac = AnthropicClient(SettingsStub())
    captured = {}
    _install(monkeypatch, {"content": []}, captured=captured)
    token = CancellationToken()
    token.cancel()
    req = ChatRequest(provider="anthropic", model="catalog-chat", messages=[ChatMessage(role="user", content="hi")])
    with pytest.raises(OperationCancelled):
        ac.chat(req, cancel=token)
    assert captured == {}


@pytest.mark.parametrize(
    "body",
    [
        {"content": [{"type": "text", "text": ["x"]}]},
        {"content": [{"type": "text", "text": "x"}], "usage": "lots"},
        {"content": [{"type": "text", "text": "x"}], "usage": {"input_tokens": "1", "output_tokens": 2}},
    ],
)
def test_anthropic_malformed_fields_are_upstream_errors(monkeypatch, body):
    ac = AnthropicClient(SettingsStub())
    _install(monkeypatch, body)
    req = ChatRequest(provider="anthropic", model="catalog-chat", messages=[ChatMessage(role="user", content="hi")])
    with pytest.raises(MalformedResponseError):
        ac.chat(req)
