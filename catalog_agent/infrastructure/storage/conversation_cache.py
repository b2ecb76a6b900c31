"""进程内会话缓存。

会话 id -> Conversation 的映射，带两种淘汰：
- 容量上限：超过 max_entries 时淘汰最近最少使用的会话；
- 滑动 TTL：会话空闲超过 ttl_seconds 后视为过期，下次访问时重建。

映射本身由一把锁保护，不同会话 id 上的并发访问是安全的；
同一会话内的串行化由 Conversation.lock 负责。
"""

import threading
import time
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Callable, Optional, Tuple
from uuid import uuid4

from catalog_agent.config.settings import settings
from catalog_agent.domain.conversation import Conversation, ConversationStore


class ConversationCache(ConversationStore):
    def __init__(
        self,
        max_entries: Optional[int] = None,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_entries = max_entries or settings.conversation_max_entries
        self.ttl_seconds = ttl_seconds or settings.conversation_ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        # conversation_id -> (Conversation, expires_at)
        self._items: "OrderedDict[str, Tuple[Conversation, float]]" = OrderedDict()

    def get_or_create(self, conversation_id: Optional[str] = None) -> Conversation:
        """返回已有会话；id 为空或未知（含已过期/已淘汰）时新建。

        调用方给出的未知 id 会被直接采用，便于客户端自行生成会话 id。
        """

        cid = conversation_id or f"c-{uuid4().hex}"
        with self._lock:
            conv = self._touch_unlocked(cid)
            if conv is not None:
                return conv
            now = datetime.now(timezone.utc)
            conv = Conversation(id=cid, created_at=now, updated_at=now)
            self._items[cid] = (conv, self._clock() + self.ttl_seconds)
            self._evict_unlocked()
            return conv

    def get(self, conversation_id: str) -> Optional[Conversation]:
        with self._lock:
            return self._touch_unlocked(conversation_id)

    def discard(self, conversation_id: str) -> bool:
        with self._lock:
            return self._items.pop(conversation_id, None) is not None

    def __len__(self) -> int:
        with self._lock:
            self._purge_expired_unlocked()
            return len(self._items)

    def _touch_unlocked(self, cid: str) -> Optional[Conversation]:
        entry = self._items.get(cid)
        if entry is None:
            return None
        conv, expires_at = entry
        now = self._clock()
        if expires_at <= now:
            del self._items[cid]
            return None
        self._items[cid] = (conv, now + self.ttl_seconds)
        self._items.move_to_end(cid)
        return conv

    def _purge_expired_unlocked(self) -> None:
        now = self._clock()
        expired = [cid for cid, (_, expires_at) in self._items.items() if expires_at <= now]
        for cid in expired:
            del self._items[cid]

    def _evict_unlocked(self) -> None:
        self._purge_expired_unlocked()
        while len(self._items) > self.max_entries:
            self._items.popitem(last=False)
