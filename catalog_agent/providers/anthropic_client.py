"""Anthropic Messages API 适配器。

与 chat/completions 协议的主要差异：
- system 指令放在顶层 system 字段，而不是 messages 里；
- assistant 的工具调用是 content 中的 tool_use 块；
- 工具结果以 role="user" 的 tool_result 块回传，且连续多条结果
  必须合并到同一条 user 消息中。
"""

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
from catalog_agent.providers.registry import ANTHROPIC_CONFIG, ModelConfig
from catalog_agent.tools.definitions import ToolCall, ToolDef


class AnthropicClient:
    name = "anthropic"

    def __init__(self, cfg=settings):
        self._settings = cfg

    def chat(self, req: ChatRequest, cancel: Optional[CancellationToken] = None) -> ChatResult:
        api_key = getattr(self._settings, "anthropic_api_key", None)
        if not api_key:
            raise ValidationError(code="MISSING_API_KEY", message="ANTHROPIC_API_KEY not set")
        model_cfg = ANTHROPIC_CONFIG.model(req.model)
        payload = self._build_payload(req, model_cfg)
        check_cancelled(cancel)
        try:
            with httpx.Client(timeout=self._settings.http_timeout, trust_env=False) as client:
                base = getattr(self._settings, "anthropic_base_url", None) or ANTHROPIC_CONFIG.base_url
                resp = client.post(
                    f"{base}/messages",
                    json=payload,
                    headers={
                        "x-api-key": api_key,
                        "anthropic-version": getattr(self._settings, "anthropic_version", "2023-06-01"),
                        "Content-Type": "application/json",
                    },
                )
        except httpx.RequestError as e:
            raise NetworkError(code="NETWORK_ERROR", message=str(e), provider=self.name)
        check_cancelled(cancel)
        if resp.status_code == 429:
            raise RateLimitError(code="RATE_LIMIT", message="Anthropic rate limit", http_status=429)
        if resp.status_code >= 400:
            raise ApiError(code="API_ERROR", message=resp.text, http_status=resp.status_code)
        try:
            data = resp.json()
        except ValueError as e:
            raise MalformedResponseError(code="MALFORMED_RESPONSE", message=f"invalid JSON: {e}")
        return self._parse_response(data, req)

    def _build_payload(self, req: ChatRequest, model_cfg: ModelConfig) -> Dict[str, Any]:
        system_parts = [m.content for m in req.messages if m.role == "system" and m.content]
        payload: Dict[str, Any] = {
            "model": model_cfg.provider_model,
            "max_tokens": req.max_tokens or model_cfg.max_tokens,
            "temperature": req.temperature,
            "messages": self._convert_messages(req.messages),
        }
        if system_parts:
            payload["system"] = "\n\n".join(system_parts)
        if req.tools and req.tool_choice != "none":
            payload["tools"] = [self._serialize_tool(t) for t in req.tools]
            payload["tool_choice"] = {"type": "any" if req.tool_choice == "required" else "auto"}
        return payload

    @staticmethod
    def _serialize_tool(tool: ToolDef) -> Dict[str, Any]:
        return {
            "name": tool.name,
            "description": tool.description,
            "input_schema": tool.json_schema(),
        }

    @staticmethod
    def _convert_messages(messages: List[ChatMessage]) -> List[Dict[str, Any]]:
        out: List[Dict[str, Any]] = []
        for m in messages:
            if m.role == "system":
                continue
            if m.role == "tool":
                block = {"type": "tool_result", "tool_use_id": m.tool_call_id or "", "content": m.content}
                prev = out[-1] if out else None
                # 连续的工具结果合并进同一条 user 消息
                if prev and prev["role"] == "user" and isinstance(prev["content"], list):
                    prev["content"].append(block)
                else:
                    out.append({"role": "user", "content": [block]})
                continue
            if m.role == "assistant":
                blocks: List[Dict[str, Any]] = []
                if m.content:
                    blocks.append({"type": "text", "text": m.content})
                for call in m.tool_calls or []:
                    blocks.append({"type": "tool_use", "id": call.id, "name": call.name, "input": call.arguments})
                if blocks:
                    out.append({"role": "assistant", "content": blocks})
                continue
            out.append({"role": "user", "content": m.content})
        return out

    def _parse_response(self, data: Any, req: ChatRequest) -> ChatResult:
        if not isinstance(data, dict) or not isinstance(data.get("content"), list):
            raise MalformedResponseError(code="MALFORMED_RESPONSE", message="response has no content blocks")
        texts: List[str] = []
        tool_calls: List[ToolCall] = []
        for idx, block in enumerate(data["content"]):
            if not isinstance(block, dict):
                continue
            if block.get("type") == "text":
                text = block.get("text") or ""
                if not isinstance(text, str):
                    raise MalformedResponseError(
                        code="MALFORMED_RESPONSE",
                        message=f"content block {idx} text is not a string",
                    )
                texts.append(text)
            elif block.get("type") == "tool_use":
                raw_input = block.get("input")
                tool_calls.append(
                    ToolCall(
                        id=block.get("id") or f"tool_use_{idx}",
                        name=block.get("name") or "",
                        arguments=raw_input if isinstance(raw_input, dict) else {},
                    )
                )
        message = ChatMessage(role="assistant", content="\n".join(texts), tool_calls=tool_calls or None)
        usage_raw = data.get("usage") or {}
        if not isinstance(usage_raw, dict):
            raise MalformedResponseError(code="MALFORMED_RESPONSE", message="usage is not an object")
        prompt_tokens = usage_raw.get("input_tokens") or 0
        completion_tokens = usage_raw.get("output_tokens") or 0
        if not isinstance(prompt_tokens, int) or not isinstance(completion_tokens, int):
            raise MalformedResponseError(code="MALFORMED_RESPONSE", message="usage token counts are not integers")
        usage = ChatUsage(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
        )
        return ChatResult(
            provider=self.name,
            model=req.model,
            choices=[ChatChoice(index=0, message=message, finish_reason=data.get("stop_reason"))],
            usage=usage,
            raw=data,
        )
