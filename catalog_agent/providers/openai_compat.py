"""OpenAI 兼容 chat/completions 协议的通用适配器。

Kimi (Moonshot) 与 GLM (BigModel) 都使用同一套接口：
- URL: {base_url}/chat/completions
- 认证: Authorization: Bearer <api_key>
- 工具调用：请求里的 tools/tool_choice，响应里的 message.tool_calls，
  工具结果以 role="tool" + tool_call_id 回传。

子类只需声明 name、config 以及 settings 中 API key / base_url 的字段名。
"""

import json
from typing import Any, Dict, List, Optional

import httpx

from catalog_agent.config.settings import settings
from catalog_agent.domain.cancellation import CancellationToken, check_cancelled
from catalog_agent.domain.exceptions import (
    ApiError,
    MalformedResponseError,
    NetworkError,
    RateLimitError,
    ValidationError,
)
from catalog_agent.domain.models import ChatChoice, ChatMessage, ChatRequest, ChatResult, ChatUsage
from catalog_agent.providers.registry import ModelConfig, ProviderConfig
from catalog_agent.tools.definitions import ToolCall, ToolDef


class OpenAICompatClient:
    name = "openai-compat"
    config: ProviderConfig
    api_key_field = ""
    base_url_field = ""

    def __init__(self, cfg=settings):
        # Settings 里包含 base_url、api_key、超时等配置
        self._settings = cfg

    def chat(self, req: ChatRequest, cancel: Optional[CancellationToken] = None) -> ChatResult:
        """执行一次非流式对话调用。

        步骤：
        1. 读取模型配置（logical model -> provider model）。
        2. 构造 HTTP 请求 payload。
        3. 发送请求并捕获网络错误/限流/服务端错误。
        4. 使用统一的解析函数构造 ChatResult。
        """

        api_key = getattr(self._settings, self.api_key_field, None)
        if not api_key:
            # 配置缺失走 ValidationError，方便上层统一处理
            raise ValidationError(code="MISSING_API_KEY", message=f"{self.api_key_field.upper()} not set")
        model_cfg = self.config.model(req.model)
        payload = self._build_payload(req, model_cfg)
        check_cancelled(cancel)
        try:
            with httpx.Client(timeout=self._settings.http_timeout, trust_env=False) as client:
                base = getattr(self._settings, self.base_url_field, None) or self.config.base_url
                resp = client.post(
                    f"{base}/chat/completions",
                    json=payload,
                    headers={
                        "Authorization": f"Bearer {api_key}",
                        "Content-Type": "application/json",
                    },
                )
        except httpx.RequestError as e:
            # 网络错误：DNS 失败、连接超时等
            raise NetworkError(code="NETWORK_ERROR", message=str(e), provider=self.name)
        check_cancelled(cancel)
        if resp.status_code == 429:
            raise RateLimitError(code="RATE_LIMIT", message=f"{self.name} rate limit", http_status=429)
        if resp.status_code >= 400:
            raise ApiError(code="API_ERROR", message=resp.text, http_status=resp.status_code)
        try:
            data = resp.json()
        except ValueError as e:
            raise MalformedResponseError(code="MALFORMED_RESPONSE", message=f"invalid JSON: {e}")
        return self._parse_response(data, req)

    def _build_payload(self, req: ChatRequest, model_cfg: ModelConfig) -> dict:
        """将 ChatRequest 转成 chat/completions 所需的请求 JSON。"""

        payload: Dict[str, Any] = {
            "model": model_cfg.provider_model,
            "messages": [self._message_to_payload(m) for m in req.messages],
            "temperature": req.temperature,
            "max_tokens": req.max_tokens or model_cfg.max_tokens,
        }
        if req.tools:
            payload["tools"] = [self._serialize_tool(tool) for tool in req.tools]
            payload["tool_choice"] = req.tool_choice
        return payload

    def _parse_response(self, data: Any, req: ChatRequest) -> ChatResult:
        """将原始响应 JSON 解析为统一的 ChatResult。"""

        if not isinstance(data, dict) or not data.get("choices"):
            raise MalformedResponseError(code="MALFORMED_RESPONSE", message="response has no choices")
        choices: list[ChatChoice] = []
        for i, ch in enumerate(data["choices"]):
            msg = ch.get("message") if isinstance(ch, dict) else None
            if not isinstance(msg, dict):
                raise MalformedResponseError(code="MALFORMED_RESPONSE", message=f"choice {i} has no message")
            choices.append(
                ChatChoice(index=i, message=self._build_chat_message(msg), finish_reason=ch.get("finish_reason"))
            )
        usage_raw = data.get("usage") or {}
        if not isinstance(usage_raw, dict):
            raise MalformedResponseError(code="MALFORMED_RESPONSE", message="usage is not an object")
        usage = ChatUsage(
            prompt_tokens=usage_raw.get("prompt_tokens", 0),
            completion_tokens=usage_raw.get("completion_tokens", 0),
            total_tokens=usage_raw.get("total_tokens", 0),
        )
        return ChatResult(provider=self.name, model=req.model, choices=choices, usage=usage, raw=data)

    def _serialize_tool(self, tool: ToolDef) -> Dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.json_schema(),
            },
        }

    def _build_chat_message(self, payload: Dict[str, Any]) -> ChatMessage:
        """将单条厂商 message 转换为 ChatMessage，同时解析 tool_calls。"""

        tool_calls: List[ToolCall] = []
        raw_calls = payload.get("tool_calls") or []
        if not isinstance(raw_calls, list):
            raise MalformedResponseError(code="MALFORMED_RESPONSE", message="tool_calls is not a list")
        for idx, call in enumerate(raw_calls):
            func = call.get("function") if isinstance(call, dict) else None
            if not isinstance(func, dict):
                raise MalformedResponseError(
                    code="MALFORMED_RESPONSE",
                    message=f"tool call {idx} has no function object",
                )
            tool_calls.append(
                ToolCall(
                    id=call.get("id") or f"tool_call_{idx}",
                    name=func.get("name") or call.get("name") or "",
                    arguments=self._parse_arguments(func.get("arguments")),
                )
            )

        # 部分模型仍会返回旧版 function_call 字段
        function_call = payload.get("function_call")
        if function_call and not isinstance(function_call, dict):
            raise MalformedResponseError(code="MALFORMED_RESPONSE", message="function_call is not an object")
        if function_call:
            tool_calls.append(
                ToolCall(
                    id=function_call.get("id") or "function_call",
                    name=function_call.get("name") or "",
                    arguments=self._parse_arguments(function_call.get("arguments")),
                )
            )
        content = payload.get("content") or ""
        if not isinstance(content, str):
            raise MalformedResponseError(code="MALFORMED_RESPONSE", message="message content is not text")
        return ChatMessage(
            role="assistant",
            content=content,
            tool_calls=tool_calls or None,
        )

    @staticmethod
    def _parse_arguments(raw: Any) -> Dict[str, Any]:
        """解析工具调用的 arguments 字段。

        arguments 通常是 JSON 字符串，这里做一层 json.loads 尝试，
        失败时保留原始字符串到 `_raw`，交给参数校验层报错。
        """

        if isinstance(raw, dict):
            return raw
        if isinstance(raw, str):
            try:
                parsed = json.loads(raw) if raw.strip() else {}
            except json.JSONDecodeError:
                return {"_raw": raw}
            return parsed if isinstance(parsed, dict) else {"_raw": raw}
        return {}

    def _message_to_payload(self, message: ChatMessage) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"role": message.role}
        if message.content or message.role == "tool":
            payload["content"] = message.content
        if message.tool_calls:
            payload["tool_calls"] = [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {
                        "name": call.name,
                        "arguments": json.dumps(call.arguments, ensure_ascii=False),
                    },
                }
                for call in message.tool_calls
            ]
        if message.tool_call_id:
            payload["tool_call_id"] = message.tool_call_id
        return payload
