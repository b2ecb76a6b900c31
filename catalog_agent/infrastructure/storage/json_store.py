import json
import os
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict
from uuid import uuid4

from catalog_agent.config.settings import settings
from catalog_agent.domain.exceptions import BusinessError
from catalog_agent.domain.items import Item
from catalog_agent.infrastructure.storage.memory_store import InMemoryItemStore


def _ts(value: datetime) -> str:
    return value.isoformat().replace("+00:00", "Z")


def _parse_ts(raw: str) -> datetime:
    return datetime.fromisoformat(str(raw).replace("Z", "+00:00"))


class JsonItemStore(InMemoryItemStore):
    """把条目保存到 <root>/items.json 的存储实现。

    读写语义与 InMemoryItemStore 相同；每次写操作后整体重写文件，
    先写临时文件再 os.replace，避免半截文件。
    """

    def __init__(self, root: str | Path | None = None):
        super().__init__()
        self._root = Path(root or settings.storage_root).resolve()
        self._root.mkdir(parents=True, exist_ok=True)
        self._path = self._root / "items.json"
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> None:
        if not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise BusinessError(code="STORE_READ_ERROR", message=str(e))
        for raw in data.get("items") or []:
            item = self._to_item(raw)
            self._items[item.id] = item
        max_id = max(self._items, default=0)
        self._next_id = max(int(data.get("next_id") or 1), max_id + 1)

    def _commit(self) -> None:
        obj = {
            "next_id": self._next_id,
            "items": [self._to_payload(i) for i in sorted(self._items.values(), key=lambda i: i.id)],
        }
        tmp_path = self._root / f"items.{uuid4().hex}.json.tmp"
        try:
            tmp_path.write_text(json.dumps(obj, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp_path, self._path)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise BusinessError(code="STORE_WRITE_ERROR", message=str(e))

    @staticmethod
    def _to_payload(item: Item) -> Dict[str, Any]:
        return {
            "id": item.id,
            "name": item.name,
            "description": item.description,
            "price": str(item.price),
            "sku": item.sku,
            "created_at": _ts(item.created_at),
            "updated_at": _ts(item.updated_at) if item.updated_at else None,
        }

    @staticmethod
    def _to_item(data: Dict[str, Any]) -> Item:
        return Item(
            id=int(data["id"]),
            name=data["name"],
            description=data["description"],
            price=Decimal(str(data["price"])),
            sku=data["sku"],
            created_at=_parse_ts(data["created_at"]),
            updated_at=_parse_ts(data["updated_at"]) if data.get("updated_at") else None,
        )
