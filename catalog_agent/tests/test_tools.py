import json
from decimal import Decimal

import pytest

from catalog_agent.catalog.service import CatalogService
from catalog_agent.domain.cancellation import CancellationToken
from catalog_agent.domain.exceptions import OperationCancelled
from catalog_agent.domain.items import ItemFields
from catalog_agent.infrastructure.storage.memory_store import InMemoryItemStore
from catalog_agent.tools.arguments import (
    ArgumentError,
    CreateItemArgs,
    UpdateItemArgs,
    parse_arguments,
)
from catalog_agent.tools.catalog_tools import TOOL_NAMES, catalog_tool_defs
from catalog_agent.tools.definitions import ToolCall
from catalog_agent.tools.executor import ToolExecutor, catalog_tools


def _executor():
    catalog = CatalogService(InMemoryItemStore())
    return catalog, ToolExecutor(catalog_tools(catalog))


def _seed(catalog, name, sku):
    return catalog.create(ItemFields(name=name, description="d", price=Decimal("5"), sku=sku))


def _call(tool_name, /, **arguments):
    return ToolCall(id=f"call-{tool_name}", name=tool_name, arguments=arguments)


def test_tool_defs_match_handlers():
    defs = catalog_tool_defs()
    assert [d.name for d in defs] == list(TOOL_NAMES)
    create = next(d for d in defs if d.name == "create_item").json_schema()
    assert create["required"] == ["name", "description", "price", "sku"]
    assert create["properties"]["price"]["type"] == "number"
    update = next(d for d in defs if d.name == "update_item").json_schema()
    assert "identifier" in update["required"]
    assert "is_sku" not in update["required"]


def test_executor_rejects_out_of_sync_handlers():
    catalog = CatalogService(InMemoryItemStore())
    tools = catalog_tools(catalog)
    tools.pop("delete_item")
    with pytest.raises(ValueError):
        ToolExecutor(tools)


def test_create_tool_returns_item_json():
    catalog, te = _executor()
    res = te.execute(_call("create_item", name="Lamp", description="LED", price=39.9, sku="DL-1"))
    payload = json.loads(res.content)
    assert payload["name"] == "Lamp"
    assert payload["price"] == 39.9
    assert payload["updated_at"] is None
    assert res.affected_item.sku == "DL-1"
    assert catalog.count() == 1


def test_create_tool_conflict_becomes_text():
    catalog, te = _executor()
    _seed(catalog, "Lamp", "K1")
    res = te.execute(_call("create_item", name="Other", description="d", price=1, sku="k1"))
    assert res.content == "An item with the SKU 'k1' already exists. Please use a different SKU."
    assert res.affected_item is None
    assert catalog.count() == 1


def test_find_tool_messages():
    catalog, te = _executor()
    _seed(catalog, "Widget", "W-1")
    _seed(catalog, "Widget", "W-2")
    _seed(catalog, "Lamp", "L-1")

    assert te.execute(_call("find_item", name="Chair")).content == "No items found with name 'Chair'"
    ambiguous = te.execute(_call("find_item", name="widget"))
    assert ambiguous.content == (
        "Multiple items found with name 'widget'. Please specify which one using its SKU. "
        "Available SKUs: W-2, W-1"
    )
    assert ambiguous.affected_item is None
    found = te.execute(_call("find_item", sku="l-1"))
    assert json.loads(found.content)["name"] == "Lamp"
    assert te.execute(_call("find_item", sku="X")).content == "No item found with SKU 'X'"
    assert te.execute(_call("find_item")).content == "Either item name or SKU must be provided"


def test_list_tool():
    catalog, te = _executor()
    assert te.execute(_call("list_items")).content == "No items found"
    _seed(catalog, "Lamp", "L-1")
    _seed(catalog, "Desk", "D-1")
    res = te.execute(_call("list_items", search_term="lamp"))
    assert [i["sku"] for i in json.loads(res.content)] == ["L-1"]
    assert res.affected_item.sku == "L-1"


def test_update_tool():
    catalog, te = _executor()
    _seed(catalog, "Lamp", "L-1")
    res = te.execute(
        _call("update_item", identifier="L-1", is_sku=True, name="Lamp", description="new", price="7.5", sku="L-1")
    )
    assert json.loads(res.content)["description"] == "new"
    assert res.affected_item.price == Decimal("7.5")

    missing = te.execute(
        _call("update_item", identifier="Chair", name="Chair", description="d", price=1, sku="C-1")
    )
    assert missing.content == "Item with name 'Chair' not found"


def test_delete_tool():
    catalog, te = _executor()
    _seed(catalog, "Widget", "W-1")
    _seed(catalog, "Widget", "W-2")
    _seed(catalog, "Lamp", "L-1")

    ambiguous = te.execute(_call("delete_item", name="Widget"))
    assert "W-1" in ambiguous.content and "W-2" in ambiguous.content
    assert catalog.count() == 3

    deleted = te.execute(_call("delete_item", name="lamp"))
    assert deleted.content == "Item with name 'lamp' has been deleted successfully"
    assert deleted.affected_item.sku == "L-1"
    assert te.execute(_call("delete_item", sku="L-1")).content == "Item with SKU 'L-1' not found"


def test_unknown_tool_and_unexpected_error():
    catalog, te = _executor()
    assert te.execute(_call("drop_table")).content == "Unknown tool: drop_table"

    def boom(args, cancel):
        raise RuntimeError("disk on fire")

    tools = catalog_tools(catalog)
    tools["list_items"] = boom
    res = ToolExecutor(tools).execute(_call("list_items"))
    assert res.content == "Error executing list_items: disk on fire"


def test_cancellation_propagates_from_tool():
    _, te = _executor()
    token = CancellationToken()
    token.cancel()
    with pytest.raises(OperationCancelled):
        te.execute(_call("list_items"), cancel=token)


@pytest.mark.parametrize(
    "arguments, message",
    [
        ({"description": "d", "price": 1, "sku": "s"}, "Name is required"),
        ({"name": "n", "description": " ", "price": 1, "sku": "s"}, "Description is required"),
        ({"name": "n", "description": "d", "price": 0, "sku": "s"}, "Price is required and must be greater than 0"),
        ({"name": "n", "description": "d", "price": "abc", "sku": "s"}, "Price is required and must be greater than 0"),
        ({"name": "n", "description": "d", "price": True, "sku": "s"}, "Price is required and must be greater than 0"),
        ({"name": "n", "description": "d", "price": 1}, "SKU is required"),
    ],
)
def test_create_arguments_validation(arguments, message):
    parsed = parse_arguments("create_item", arguments)
    assert isinstance(parsed, ArgumentError)
    assert parsed.message == message


def test_update_arguments():
    parsed = parse_arguments(
        "update_item",
        {"identifier": " Lamp ", "name": "Lamp", "description": "d", "price": "2.50", "sku": "L"},
    )
    assert isinstance(parsed, UpdateItemArgs)
    assert parsed.identifier == "Lamp"
    assert parsed.is_sku is False
    assert parsed.to_fields().price == Decimal("2.50")

    missing = parse_arguments("update_item", {"name": "n", "description": "d", "price": 1, "sku": "s"})
    assert missing.message == "Item identifier (name or SKU) is required"


def test_raw_arguments_are_rejected():
    parsed = parse_arguments("create_item", {"_raw": "{broken"})
    assert isinstance(parsed, ArgumentError)
    assert parse_arguments("create_item", "not a dict").message == "Name is required"
    ok = parse_arguments("create_item", {"name": "n", "description": "d", "price": 1, "sku": "s", "extra": 1})
    assert isinstance(ok, CreateItemArgs)
