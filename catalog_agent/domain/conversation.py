import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Protocol

from .models import ChatMessage


@dataclass
class Conversation:
    """一次会话的全部轮次（user / assistant / tool），仅存活于进程内。

    lock 用于串行化同一会话 id 上的并发 process() 调用。
    """

    id: str
    created_at: datetime
    updated_at: datetime
    turns: List[ChatMessage] = field(default_factory=list)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def append(self, message: ChatMessage, now: datetime) -> None:
        self.turns.append(message)
        self.updated_at = now


class ConversationStore(Protocol):
    def get_or_create(self, conversation_id: Optional[str] = None) -> Conversation:
        ...

    def get(self, conversation_id: str) -> Optional[Conversation]:
        ...

    def discard(self, conversation_id: str) -> bool:
        ...
