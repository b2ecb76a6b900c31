import threading
from copy import copy
from datetime import datetime
from typing import Dict, List, Optional

from catalog_agent.domain.exceptions import ConflictError
from catalog_agent.domain.items import Item, ItemFields, ItemStore


def _newest_first(items: List[Item]) -> List[Item]:
    return sorted(items, key=lambda i: (i.created_at, i.id), reverse=True)


class InMemoryItemStore(ItemStore):
    """进程内条目存储。

    SKU 唯一性在 insert/replace 内部持锁检查后再写入，
    检查与写入之间不会被其他写操作插入。返回的都是副本，
    调用方修改不会绕过 replace 直接改动存储。
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._items: Dict[int, Item] = {}
        self._next_id = 1

    def get(self, item_id: int) -> Optional[Item]:
        with self._lock:
            item = self._items.get(item_id)
            return copy(item) if item else None

    def list_all(self) -> List[Item]:
        with self._lock:
            return _newest_first([copy(i) for i in self._items.values()])

    def search(self, term: str) -> List[Item]:
        needle = (term or "").casefold()
        with self._lock:
            hits = [
                copy(i)
                for i in self._items.values()
                if needle in i.name.casefold()
                or needle in i.description.casefold()
                or needle in i.sku.casefold()
            ]
        return _newest_first(hits)

    def insert(self, fields: ItemFields, created_at: datetime) -> Item:
        with self._lock:
            self._ensure_sku_free(fields.sku, exclude_id=None)
            item = Item(
                id=self._next_id,
                name=fields.name,
                description=fields.description,
                price=fields.price,
                sku=fields.sku,
                created_at=created_at,
            )
            self._next_id += 1
            self._items[item.id] = item
            self._commit_or_restore(item.id, None, item.id)
            return copy(item)

    def replace(self, item: Item) -> Optional[Item]:
        with self._lock:
            if item.id not in self._items:
                return None
            self._ensure_sku_free(item.sku, exclude_id=item.id)
            stored = copy(item)
            previous = self._items[item.id]
            self._items[item.id] = stored
            self._commit_or_restore(item.id, previous, self._next_id)
            return copy(stored)

    def delete(self, item_id: int) -> bool:
        with self._lock:
            previous = self._items.pop(item_id, None)
            if previous is None:
                return False
            self._commit_or_restore(item_id, previous, self._next_id)
            return True

    def count(self) -> int:
        with self._lock:
            return len(self._items)

    def _ensure_sku_free(self, sku: str, exclude_id: Optional[int]) -> None:
        for existing in self._items.values():
            if existing.id != exclude_id and existing.matches_sku(sku):
                raise ConflictError(sku)

    def _commit_or_restore(self, item_id: int, previous: Optional[Item], next_id: int) -> None:
        """提交失败时把该 id 恢复为写入前的条目（None 表示原本不存在），再抛出。"""

        try:
            self._commit()
        except Exception:
            if previous is None:
                self._items.pop(item_id, None)
                self._next_id = next_id
            else:
                self._items[item_id] = previous
            raise

    def _commit(self) -> None:
        """写操作完成后的钩子（持锁调用），持久化实现在此落盘。"""
