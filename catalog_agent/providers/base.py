"""Provider 抽象接口。

上层编排器不直接依赖具体厂商的 HTTP API，而是依赖此协议：

- 每个厂商实现一个 ProviderClient（如 AnthropicClient、KimiClient）。
- 负责：将 ChatRequest 转成具体 API 请求，并把响应 JSON 解析为 ChatResult。
- 每次调用恰好返回一条 assistant 消息，附带零个或多个工具调用，
  每个工具调用都有稳定的 id，用于关联随后的工具结果轮次。
"""

from typing import Optional, Protocol

from catalog_agent.domain.cancellation import CancellationToken
from catalog_agent.domain.models import ChatRequest, ChatResult


class ProviderClient(Protocol):
    """LLM Provider 客户端协议。

    实现者需要提供：
    - name: Provider 名称，用于日志/统计。
    - chat(req, cancel): 执行一次非流式对话调用，返回统一的 ChatResult；
      发送前与收到响应后都要检查取消信号。
    """

    name: str

    def chat(self, req: ChatRequest, cancel: Optional[CancellationToken] = None) -> ChatResult:
        ...
