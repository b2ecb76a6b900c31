"""条目业务操作层。

在原始存储之上负责：
- 名称 / SKU 的身份解析（对外只暴露 name 和 sku，从不暴露内部 id）；
- 名称歧义检测：按名称修改或删除命中多条时抛出 AmbiguousError；
- 字段校验与 updated_at 维护。

SKU 唯一性由存储层在写路径内原子检查，本层不做“先查后写”。
“未找到”不是异常：查询返回 None，删除返回 False。
"""

import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Callable, List, Optional

from catalog_agent.domain.cancellation import CancellationToken, check_cancelled
from catalog_agent.domain.exceptions import AmbiguousError, ValidationError
from catalog_agent.domain.items import Item, ItemFields, ItemStore
from catalog_agent.infrastructure.logging.logger import logger


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_fields(fields: ItemFields) -> ItemFields:
    """校验并返回去除首尾空白后的字段，非法时抛出 ValidationError。"""

    name = (fields.name or "").strip()
    description = (fields.description or "").strip()
    sku = (fields.sku or "").strip()
    if not name:
        raise ValidationError(code="INVALID_FIELD", message="Name is required", field="name")
    if not description:
        raise ValidationError(code="INVALID_FIELD", message="Description is required", field="description")
    try:
        price = fields.price if isinstance(fields.price, Decimal) else Decimal(str(fields.price))
        valid_price = price.is_finite() and price > 0
    except (InvalidOperation, TypeError, ValueError):
        valid_price = False
    if not valid_price:
        raise ValidationError(
            code="INVALID_FIELD",
            message="Price is required and must be greater than 0",
            field="price",
        )
    if not sku:
        raise ValidationError(code="INVALID_FIELD", message="SKU is required", field="sku")
    return ItemFields(name=name, description=description, price=price, sku=sku)


class CatalogService:
    def __init__(self, store: ItemStore, clock: Callable[[], datetime] = _utcnow):
        self._store = store
        self._clock = clock

    # ---- 查询 ----

    def find_by_name(self, name: str, cancel: Optional[CancellationToken] = None) -> Optional[Item]:
        """仅当恰好一条名称匹配时返回；零条或多条都返回 None。"""

        matches = self.find_all_by_name(name, cancel)
        return matches[0] if len(matches) == 1 else None

    def find_all_by_name(self, name: str, cancel: Optional[CancellationToken] = None) -> List[Item]:
        check_cancelled(cancel)
        return [item for item in self._store.search(name) if item.matches_name(name)]

    def find_by_sku(self, sku: str, cancel: Optional[CancellationToken] = None) -> Optional[Item]:
        check_cancelled(cancel)
        for item in self._store.search(sku):
            if item.matches_sku(sku):
                return item
        return None

    def list_all(self, cancel: Optional[CancellationToken] = None) -> List[Item]:
        check_cancelled(cancel)
        return self._store.list_all()

    def search(self, term: str, cancel: Optional[CancellationToken] = None) -> List[Item]:
        check_cancelled(cancel)
        return self._store.search(term)

    def count(self, cancel: Optional[CancellationToken] = None) -> int:
        check_cancelled(cancel)
        return self._store.count()

    # ---- 写操作 ----

    def create(self, fields: ItemFields, cancel: Optional[CancellationToken] = None) -> Item:
        clean = normalize_fields(fields)
        check_cancelled(cancel)
        item = self._store.insert(clean, created_at=self._clock())
        logger.log(logging.INFO, "Created item", extra={"extra": {"item_id": item.id, "sku": item.sku}})
        return item

    def update(
        self,
        identifier: str,
        is_sku: bool,
        fields: ItemFields,
        cancel: Optional[CancellationToken] = None,
    ) -> Optional[Item]:
        """按名称或 SKU 定位条目并整体替换可变字段。

        Returns:
            更新后的条目；定位不到时返回 None。

        Raises:
            AmbiguousError: 按名称命中多条。
            ConflictError: 新 SKU 已被其他条目占用。
            ValidationError: 字段非法。
        """

        clean = normalize_fields(fields)
        if is_sku:
            existing = self.find_by_sku(identifier, cancel)
        else:
            existing = self._resolve_unique_name(identifier, "update", cancel)
        if existing is None:
            return None

        existing.apply(clean, updated_at=self._next_update_time(existing))
        check_cancelled(cancel)
        updated = self._store.replace(existing)
        if updated is not None:
            logger.log(logging.INFO, "Updated item", extra={"extra": {"item_id": updated.id, "sku": updated.sku}})
        return updated

    def delete_by_name(self, name: str, cancel: Optional[CancellationToken] = None) -> bool:
        item = self._resolve_unique_name(name, "delete", cancel)
        if item is None:
            return False
        return self._delete(item, cancel)

    def delete_by_sku(self, sku: str, cancel: Optional[CancellationToken] = None) -> bool:
        item = self.find_by_sku(sku, cancel)
        if item is None:
            return False
        return self._delete(item, cancel)

    # ---- 内部 ----

    def _resolve_unique_name(
        self,
        name: str,
        action: str,
        cancel: Optional[CancellationToken],
    ) -> Optional[Item]:
        matches = self.find_all_by_name(name, cancel)
        if len(matches) > 1:
            raise AmbiguousError(name, [m.sku for m in matches], action=action)
        return matches[0] if matches else None

    def _delete(self, item: Item, cancel: Optional[CancellationToken]) -> bool:
        check_cancelled(cancel)
        deleted = self._store.delete(item.id)
        if deleted:
            logger.log(logging.INFO, "Deleted item", extra={"extra": {"item_id": item.id, "sku": item.sku}})
        return deleted

    def _next_update_time(self, item: Item) -> datetime:
        # updated_at 必须严格晚于上一次的时间戳，即使时钟分辨率不足
        now = self._clock()
        floor = item.updated_at or item.created_at
        if now <= floor:
            now = floor + timedelta(microseconds=1)
        return now
