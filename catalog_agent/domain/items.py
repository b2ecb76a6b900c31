"""商品条目模型与存储协议。

- Item: 持久化实体，id 与 created_at 由存储层分配。
- ItemFields: 可变字段集合，create/update 的输入。
- ItemView: 面向调用方的投影，序列化后也作为工具结果交给模型。
- ItemStore: 存储抽象；唯一性检查必须在写路径内原子完成。
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Protocol


@dataclass
class ItemFields:
    name: str
    description: str
    price: Decimal
    sku: str


@dataclass
class Item:
    id: int
    name: str
    description: str
    price: Decimal
    sku: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    def matches_name(self, name: str) -> bool:
        return self.name.casefold() == name.casefold()

    def matches_sku(self, sku: str) -> bool:
        return self.sku.casefold() == sku.casefold()

    def apply(self, fields: ItemFields, updated_at: datetime) -> None:
        """整体替换可变字段并刷新 updated_at。"""

        self.name = fields.name
        self.description = fields.description
        self.price = fields.price
        self.sku = fields.sku
        self.updated_at = updated_at


def _iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class ItemView:
    """调用方可见的条目投影（所有字段都在，updated_at 可为空）。"""

    id: int
    name: str
    description: str
    price: Decimal
    sku: str
    created_at: datetime
    updated_at: Optional[datetime]

    @classmethod
    def from_item(cls, item: Item) -> "ItemView":
        return cls(
            id=item.id,
            name=item.name,
            description=item.description,
            price=item.price,
            sku=item.sku,
            created_at=item.created_at,
            updated_at=item.updated_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": float(self.price),
            "sku": self.sku,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class ItemStore(Protocol):
    def get(self, item_id: int) -> Optional[Item]:
        ...

    def list_all(self) -> List[Item]:
        """按 created_at 倒序返回全部条目。"""

        ...

    def search(self, term: str) -> List[Item]:
        """name / description / sku 的大小写不敏感子串匹配，排序同 list_all。"""

        ...

    def insert(self, fields: ItemFields, created_at: datetime) -> Item:
        """分配 id 并写入；SKU 冲突时抛出 ConflictError 且不写入。"""

        ...

    def replace(self, item: Item) -> Optional[Item]:
        """按 id 整体替换；SKU 与其他条目冲突时抛出 ConflictError。"""

        ...

    def delete(self, item_id: int) -> bool:
        ...

    def count(self) -> int:
        ...
