"""测试条目业务操作层。"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from catalog_agent.catalog.service import CatalogService, normalize_fields
from catalog_agent.domain.cancellation import CancellationToken
from catalog_agent.domain.exceptions import AmbiguousError, ConflictError, OperationCancelled, ValidationError
from catalog_agent.domain.items import ItemFields
from catalog_agent.infrastructure.storage.memory_store import InMemoryItemStore


class TickingClock:
    """每次调用前进一秒的假时钟。"""

    def __init__(self):
        self.now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        self.now += timedelta(seconds=1)
        return self.now


def _fields(name="Widget", sku="W-1", price="10.00", description="A widget"):
    return ItemFields(name=name, description=description, price=Decimal(price), sku=sku)


def _catalog(clock=None):
    return CatalogService(InMemoryItemStore(), clock=clock or TickingClock())


def test_create_and_find():
    catalog = _catalog()
    item = catalog.create(_fields(name="  Lamp ", sku=" L-1 "))
    assert item.id == 1
    assert item.name == "Lamp"
    assert item.sku == "L-1"
    assert item.updated_at is None
    assert catalog.find_by_name("lamp").id == item.id
    assert catalog.find_by_sku("l-1").id == item.id
    assert catalog.find_by_name("Lam") is None


def test_create_rejects_duplicate_sku_case_insensitive():
    catalog = _catalog()
    catalog.create(_fields(sku="K1"))
    with pytest.raises(ConflictError) as exc:
        catalog.create(_fields(name="Other", sku="k1"))
    assert exc.value.code == "SKU_CONFLICT"
    assert "k1" in exc.value.message
    assert catalog.count() == 1


@pytest.mark.parametrize(
    "fields, message",
    [
        (_fields(name="  "), "Name is required"),
        (_fields(description=""), "Description is required"),
        (_fields(price="0"), "Price is required and must be greater than 0"),
        (_fields(price="-1"), "Price is required and must be greater than 0"),
        (_fields(sku=" "), "SKU is required"),
    ],
)
def test_create_rejects_invalid_fields(fields, message):
    catalog = _catalog()
    with pytest.raises(ValidationError) as exc:
        catalog.create(fields)
    assert exc.value.message == message
    assert catalog.count() == 0


def test_normalize_fields_accepts_float_price():
    clean = normalize_fields(ItemFields(name="a", description="b", price=19.99, sku="c"))
    assert clean.price == Decimal("19.99")


def test_find_by_name_ambiguous_returns_none():
    catalog = _catalog()
    catalog.create(_fields(sku="W-1"))
    catalog.create(_fields(sku="W-2"))
    assert catalog.find_by_name("widget") is None
    assert [i.sku for i in catalog.find_all_by_name("WIDGET")] == ["W-2", "W-1"]


def test_list_all_newest_first_and_search():
    catalog = _catalog()
    catalog.create(_fields(name="Keyboard", sku="KB-1", description="mechanical"))
    catalog.create(_fields(name="Mouse", sku="MS-1", description="wireless"))
    catalog.create(_fields(name="Headset", sku="HS-1", description="wireless audio"))
    assert [i.sku for i in catalog.list_all()] == ["HS-1", "MS-1", "KB-1"]
    assert [i.sku for i in catalog.search("WIRELESS")] == ["HS-1", "MS-1"]
    assert [i.sku for i in catalog.search("kb-")] == ["KB-1"]
    assert catalog.search("nothing") == []


def test_update_by_name_and_sku():
    catalog = _catalog()
    created = catalog.create(_fields(name="Lamp", sku="L-1"))
    updated = catalog.update("lamp", False, _fields(name="Desk Lamp", sku="L-2", price="12.5"))
    assert updated.id == created.id
    assert updated.name == "Desk Lamp"
    assert updated.price == Decimal("12.5")
    assert updated.created_at == created.created_at
    assert updated.updated_at > created.created_at

    again = catalog.update("l-2", True, _fields(name="Desk Lamp", sku="L-2", price="13"))
    assert again.updated_at > updated.updated_at
    assert catalog.find_by_sku("L-1") is None


def test_update_keeps_own_sku_and_rejects_taken_sku():
    catalog = _catalog()
    catalog.create(_fields(name="A", sku="A-1"))
    catalog.create(_fields(name="B", sku="B-1"))
    # 保留自身 SKU（仅大小写不同）不算冲突
    assert catalog.update("A", False, _fields(name="A", sku="a-1")).sku == "a-1"
    with pytest.raises(ConflictError):
        catalog.update("B", False, _fields(name="B", sku="A-1"))
    assert catalog.find_by_name("B").sku == "B-1"


def test_update_ambiguous_and_missing():
    catalog = _catalog()
    catalog.create(_fields(sku="W-1"))
    catalog.create(_fields(sku="W-2"))
    with pytest.raises(AmbiguousError) as exc:
        catalog.update("Widget", False, _fields(sku="W-3"))
    assert exc.value.message == (
        "Multiple items found with name 'Widget'. Please specify the SKU to update "
        "the correct item. Available SKUs: W-2, W-1"
    )
    stored = sorted((i.sku, i.name, i.price, i.updated_at) for i in catalog.list_all())
    assert stored == [("W-1", "Widget", Decimal("10.00"), None), ("W-2", "Widget", Decimal("10.00"), None)]
    assert catalog.update("Nope", False, _fields(sku="N-1")) is None
    assert catalog.update("N-1", True, _fields(sku="N-1")) is None


def test_updated_at_strictly_increases_with_frozen_clock():
    frozen = datetime(2024, 1, 1, tzinfo=timezone.utc)
    catalog = _catalog(clock=lambda: frozen)
    catalog.create(_fields())
    first = catalog.update("W-1", True, _fields(price="11"))
    second = catalog.update("W-1", True, _fields(price="12"))
    assert first.updated_at > frozen
    assert second.updated_at > first.updated_at


def test_delete_by_name_and_sku():
    catalog = _catalog()
    catalog.create(_fields(name="Lamp", sku="L-1"))
    catalog.create(_fields(name="Desk", sku="D-1"))
    assert catalog.delete_by_name("LAMP") is True
    assert catalog.delete_by_name("Lamp") is False
    assert catalog.delete_by_sku("d-1") is True
    assert catalog.delete_by_sku("D-1") is False
    assert catalog.count() == 0


def test_delete_ambiguous_name_leaves_store_unchanged():
    catalog = _catalog()
    catalog.create(_fields(sku="W-1"))
    catalog.create(_fields(sku="W-2"))
    with pytest.raises(AmbiguousError) as exc:
        catalog.delete_by_name("Widget")
    assert exc.value.code == "AMBIGUOUS_NAME"
    assert "W-1" in exc.value.message and "W-2" in exc.value.message
    assert catalog.count() == 2


def test_ids_are_not_reused_after_delete():
    catalog = _catalog()
    first = catalog.create(_fields(sku="A"))
    catalog.delete_by_sku("A")
    second = catalog.create(_fields(sku="A"))
    assert second.id > first.id


def test_cancelled_operation_does_not_write():
    catalog = _catalog()
    token = CancellationToken()
    token.cancel()
    with pytest.raises(OperationCancelled):
        catalog.create(_fields(), cancel=token)
    assert catalog.count() == 0


def test_update_with_identical_values_refreshes_updated_at():
    catalog = _catalog()
    created = catalog.create(_fields(name="Lamp", sku="L-1", price="12.50", description="LED lamp"))
    same = ItemFields(name=created.name, description=created.description, price=created.price, sku=created.sku)

    first = catalog.update("L-1", True, same)
    assert (first.name, first.description, first.price, first.sku) == ("Lamp", "LED lamp", Decimal("12.50"), "L-1")
    assert first.updated_at > created.created_at

    second = catalog.update("Lamp", False, same)
    assert second.updated_at > first.updated_at
    assert catalog.count() == 1
