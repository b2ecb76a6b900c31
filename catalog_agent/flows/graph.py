"""LangGraph construction and node implementations for one prompt turn.

    model ──(有工具调用)──> tools ──> follow_up ──> END
      └──(无工具调用)──────────────────────────────> END

至多两次模型调用：第二次依赖第一次的工具结果，因此二者严格串行。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List

from langgraph.graph import END, StateGraph
from langgraph.graph.state import CompiledStateGraph

from catalog_agent.domain.models import ChatMessage, ChatRequest, ChatResult
from catalog_agent.flows.state import TurnState
from catalog_agent.infrastructure.logging.logger import logger
from catalog_agent.providers.base import ProviderClient
from catalog_agent.tools.definitions import ToolDef
from catalog_agent.tools.executor import ToolExecutor


@dataclass
class TurnDeps:
    """节点共享的协作者与模型参数。"""

    provider_client: ProviderClient
    tool_executor: ToolExecutor
    tool_defs: List[ToolDef]
    system_prompt: str
    provider: str
    model: str
    temperature: float
    max_tokens: int


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _log(level: int, message: str, state: TurnState, **fields: Any) -> None:
    payload = dict(state.get("log_ctx") or {})
    payload.update(fields)
    logger.log(level, message, extra={"extra": payload})


def _call_model(state: TurnState, deps: TurnDeps, phase: str) -> ChatMessage:
    conv = state["conversation"]
    messages = [ChatMessage(role="system", content=deps.system_prompt)] + list(conv.turns)
    req = ChatRequest(
        provider=deps.provider,
        model=deps.model,
        messages=messages,
        temperature=deps.temperature,
        max_tokens=deps.max_tokens,
        tools=deps.tool_defs,
        tool_choice="auto",
    )
    _log(logging.INFO, "Calling provider", state, phase=phase, message_count=len(messages))
    result: ChatResult = deps.provider_client.chat(req, cancel=state.get("cancel"))
    if result.usage:
        _log(
            logging.INFO,
            "Token usage",
            state,
            phase=phase,
            prompt_tokens=result.usage.prompt_tokens,
            completion_tokens=result.usage.completion_tokens,
            total_tokens=result.usage.total_tokens,
        )
    return result.message


def model_node(state: TurnState, deps: TurnDeps) -> Dict[str, Any]:
    msg = _call_model(state, deps, phase="initial")
    calls = list(msg.tool_calls or [])
    state["conversation"].append(
        ChatMessage(role="assistant", content=msg.content, tool_calls=calls or None),
        _now(),
    )
    if calls:
        _log(logging.INFO, "Executing tool calls", state, call_count=len(calls))
    return {"pending_calls": calls}


def tool_node(state: TurnState, deps: TurnDeps) -> Dict[str, Any]:
    """按模型给出的顺序逐个执行工具，并按同一顺序追加结果轮次。"""

    conv = state["conversation"]
    last_action = None
    affected_item = None
    for call in state.get("pending_calls") or []:
        _log(
            logging.INFO,
            "Tool call received",
            state,
            tool_name=call.name,
            tool_call_id=call.id,
            tool_args=call.arguments,
        )
        result = deps.tool_executor.execute(call, cancel=state.get("cancel"))
        conv.append(ChatMessage(role="tool", content=result.content, tool_call_id=call.id), _now())
        _log(
            logging.INFO,
            "Tool execution finished",
            state,
            tool_call_id=call.id,
            result_preview=result.content[:200],
        )
        last_action = call.name
        affected_item = result.affected_item
    return {"pending_calls": [], "last_action": last_action, "affected_item": affected_item}


def follow_up_node(state: TurnState, deps: TurnDeps) -> Dict[str, Any]:
    msg = _call_model(state, deps, phase="follow_up")
    if msg.tool_calls:
        # 第二次调用之后不再执行工具；不保留未应答的调用，否则下一轮历史不合法
        _log(
            logging.WARNING,
            "Dropping tool calls requested after tool phase",
            state,
            tool_names=[c.name for c in msg.tool_calls],
        )
    state["conversation"].append(ChatMessage(role="assistant", content=msg.content), _now())
    return {"pending_calls": []}


def route_after_model(state: TurnState) -> str:
    if state.get("pending_calls"):
        return "tools"
    return "done"


def build_turn_graph(deps: TurnDeps) -> CompiledStateGraph:
    graph = StateGraph(TurnState)
    graph.add_node("model", lambda s: model_node(s, deps))
    graph.add_node("tools", lambda s: tool_node(s, deps))
    graph.add_node("follow_up", lambda s: follow_up_node(s, deps))
    graph.set_entry_point("model")
    graph.add_conditional_edges("model", route_after_model, {"tools": "tools", "done": END})
    graph.add_edge("tools", "follow_up")
    graph.add_edge("follow_up", END)
    return graph.compile()
