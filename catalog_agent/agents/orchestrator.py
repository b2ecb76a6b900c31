"""会话编排器。

一次 process() 调用的完整流程：
1. 解析会话（复用已有历史或新建会话）；
2. 追加用户轮次；
3. 运行 LangGraph 轮次图：首轮模型调用 →（若有工具调用）执行工具 → 跟进模型调用；
4. 过滤出 user/assistant 轮次作为对话记录，附上最后一次工具调用的结果元数据。

工具失败会转换为文本交还给模型；只有模型调用失败（UpstreamError）
与取消（OperationCancelled）会向调用方抛出，已追加的轮次保留在历史中。
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional
from uuid import uuid4
from datetime import datetime, timezone
import time
import logging

from catalog_agent.catalog.service import CatalogService
from catalog_agent.config.settings import settings
from catalog_agent.domain.cancellation import CancellationToken
from catalog_agent.domain.conversation import ConversationStore
from catalog_agent.domain.exceptions import InvalidArgumentError
from catalog_agent.domain.items import ItemView
from catalog_agent.domain.models import ChatMessage
from catalog_agent.flows.graph import TurnDeps, build_turn_graph
from catalog_agent.flows.state import TurnState
from catalog_agent.infrastructure.logging.logger import logger
from catalog_agent.infrastructure.storage.conversation_cache import ConversationCache
from catalog_agent.prompts import load_system_prompt
from catalog_agent.providers.base import ProviderClient
from catalog_agent.tools.catalog_tools import catalog_tool_defs
from catalog_agent.tools.definitions import ToolDef
from catalog_agent.tools.executor import ToolExecutor, catalog_tools


@dataclass
class OrchestratorConfig:
    provider: str
    model: str = "catalog-chat"
    temperature: float = 0.7  # 生成温度
    max_tokens: int = 2048
    locale: str = "en"  # 系统提示词语言


@dataclass
class TranscriptEntry:
    role: Literal["user", "assistant"]
    text: str


@dataclass
class ProcessResult:
    """process() 的返回信封。

    last_action / affected_item 属于整个会话响应，而不是某条消息；
    多个工具运行时只反映最后一个。
    """

    conversation_id: str
    transcript: List[TranscriptEntry] = field(default_factory=list)
    last_action: Optional[str] = None
    affected_item: Optional[ItemView] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "conversation_id": self.conversation_id,
            "transcript": [{"role": e.role, "text": e.text} for e in self.transcript],
            "last_action": self.last_action,
            "affected_item": self.affected_item.to_dict() if self.affected_item else None,
        }


def build_transcript(turns: List[ChatMessage]) -> List[TranscriptEntry]:
    """只保留有文本的 user/assistant 轮次；工具结果是内部协议，不对外展示。"""

    entries: List[TranscriptEntry] = []
    for turn in turns:
        if turn.role not in ("user", "assistant"):
            continue
        if not (turn.content or "").strip():
            continue
        entries.append(TranscriptEntry(role=turn.role, text=turn.content))
    return entries


class ConversationOrchestrator:
    def __init__(
        self,
        catalog: CatalogService,
        provider_client: ProviderClient,
        conversations: Optional[ConversationStore] = None,
        tool_executor: Optional[ToolExecutor] = None,
        tool_defs: Optional[List[ToolDef]] = None,
        config: Optional[OrchestratorConfig] = None,
    ):
        self._catalog = catalog
        self._provider_client = provider_client
        self._conversations = conversations or ConversationCache()
        self._tool_defs = tool_defs or catalog_tool_defs()
        self._tool_executor = tool_executor or ToolExecutor(
            catalog_tools(catalog), declared=[t.name for t in self._tool_defs]
        )
        self._config = config or OrchestratorConfig(
            provider=getattr(provider_client, "name", None) or settings.default_provider,
            model=settings.default_model,
            temperature=settings.temperature,
            max_tokens=settings.max_tokens,
            locale=settings.prompt_locale,
        )
        self._graph = build_turn_graph(
            TurnDeps(
                provider_client=provider_client,
                tool_executor=self._tool_executor,
                tool_defs=self._tool_defs,
                system_prompt=load_system_prompt(self._config.locale),
                provider=self._config.provider,
                model=self._config.model,
                temperature=self._config.temperature,
                max_tokens=self._config.max_tokens,
            )
        )

    @property
    def conversations(self) -> ConversationStore:
        return self._conversations

    def process(
        self,
        prompt: str,
        conversation_id: Optional[str] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> ProcessResult:
        """处理一条用户输入。

        Args:
            prompt: 用户的自然语言请求，不能为空白。
            conversation_id: 会话ID（可选，未知或为空时新建会话）。
            cancel: 取消信号（可选）。

        Returns:
            ProcessResult，包含对话记录与最后一次工具调用的元数据。

        Raises:
            InvalidArgumentError: prompt 为空白。
            UpstreamError: 模型服务不可用或响应无法解析。
            OperationCancelled: 取消信号触发。
        """
        if not prompt or not prompt.strip():
            raise InvalidArgumentError("Prompt must not be empty")

        start_time = time.time()
        log_ctx: Dict[str, Any] = {"trace_id": f"tr-{uuid4().hex}"}

        conv = self._conversations.get_or_create(conversation_id)
        log_ctx["conversation_id"] = conv.id
        if not conv.turns:
            self._log(logging.INFO, "Created new conversation", log_ctx)

        # 同一会话上的并发调用在此串行化
        with conv.lock:
            conv.append(ChatMessage(role="user", content=prompt), datetime.now(timezone.utc))
            self._log(logging.INFO, "Stored user message", log_ctx, turn_count=len(conv.turns))

            initial: TurnState = {
                "conversation": conv,
                "cancel": cancel,
                "log_ctx": log_ctx,
                "pending_calls": [],
                "last_action": None,
                "affected_item": None,
            }
            final = self._run_graph(initial, log_ctx)
            transcript = build_transcript(conv.turns)

        affected = final.get("affected_item")
        result = ProcessResult(
            conversation_id=conv.id,
            transcript=transcript,
            last_action=final.get("last_action"),
            affected_item=ItemView.from_item(affected) if affected else None,
        )
        self._log(
            logging.INFO,
            "Completed prompt",
            log_ctx,
            elapsed_seconds=round(time.time() - start_time, 2),
            last_action=result.last_action,
        )
        return result

    def _run_graph(self, initial: TurnState, log_ctx: Dict[str, Any]) -> TurnState:
        try:
            return self._graph.invoke(initial)
        except Exception as e:
            self._log(logging.ERROR, "Prompt processing failed", log_ctx, error=str(e))
            raise

    @staticmethod
    def _log(level: int, message: str, log_ctx: Dict[str, Any], **fields: Any) -> None:
        payload = dict(log_ctx)
        payload.update(fields)
        logger.log(level, message, extra={"extra": payload})
