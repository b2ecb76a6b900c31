"""State definition for the per-prompt LangGraph turn."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, TypedDict

from catalog_agent.domain.cancellation import CancellationToken
from catalog_agent.domain.conversation import Conversation
from catalog_agent.domain.items import Item
from catalog_agent.tools.definitions import ToolCall


class TurnState(TypedDict, total=False):
    """State shared across LangGraph nodes for one process() call.

    conversation 是缓存中的同一个对象，节点直接向其追加轮次，
    因此中途失败或取消时已追加的轮次会保留。
    """

    conversation: Conversation
    cancel: Optional[CancellationToken]
    log_ctx: Dict[str, Any]
    pending_calls: List[ToolCall]
    last_action: Optional[str]
    affected_item: Optional[Item]
