"""暴露给模型的五个条目工具声明。

每轮模型调用都会携带这份声明；ToolExecutor 的处理函数表必须与
TOOL_NAMES 一一对应。
"""

from typing import List

from .definitions import ToolDef, ToolParam


FIND_ITEM = "find_item"
LIST_ITEMS = "list_items"
CREATE_ITEM = "create_item"
UPDATE_ITEM = "update_item"
DELETE_ITEM = "delete_item"

TOOL_NAMES = (FIND_ITEM, LIST_ITEMS, CREATE_ITEM, UPDATE_ITEM, DELETE_ITEM)


def _string(name: str, description: str, required: bool) -> ToolParam:
    return ToolParam(name=name, description=description, required=required, schema={"type": "string"})


def _price(description: str) -> ToolParam:
    return ToolParam(
        name="price",
        description=description,
        required=True,
        schema={"type": "number", "exclusiveMinimum": 0},
    )


def catalog_tool_defs() -> List[ToolDef]:
    return [
        ToolDef(
            name=FIND_ITEM,
            description="Find and retrieve a specific item by its name or SKU. At least one must be provided.",
            params={
                "name": _string("name", "The name of the item to find (exact match, case-insensitive)", False),
                "sku": _string("sku", "The SKU of the item to find", False),
            },
        ),
        ToolDef(
            name=LIST_ITEMS,
            description="List all items or search items by name, description or SKU.",
            params={
                "search_term": _string(
                    "search_term",
                    "Optional search term to filter items by name, description or SKU",
                    False,
                ),
            },
        ),
        ToolDef(
            name=CREATE_ITEM,
            description=(
                "Create a new item with all required details (name, description, price, sku). "
                "SKU must be unique."
            ),
            params={
                "name": _string("name", "The name of the item", True),
                "description": _string("description", "A detailed description of the item", True),
                "price": _price("The price of the item, greater than 0"),
                "sku": _string("sku", "The SKU (Stock Keeping Unit) of the item", True),
            },
        ),
        ToolDef(
            name=UPDATE_ITEM,
            description=(
                "Update an existing item identified by name or SKU. All item fields must be provided. "
                "If multiple items have the same name, the user will be asked to provide the SKU."
            ),
            params={
                "identifier": _string("identifier", "The current name or SKU of the item to update", True),
                "is_sku": ToolParam(
                    name="is_sku",
                    description="Set to true if identifier is a SKU, false if it's a name",
                    required=False,
                    schema={"type": "boolean"},
                ),
                "name": _string("name", "The new name for the item", True),
                "description": _string("description", "The new description of the item", True),
                "price": _price("The new price of the item, greater than 0"),
                "sku": _string("sku", "The new SKU for the item (must be unique)", True),
            },
        ),
        ToolDef(
            name=DELETE_ITEM,
            description="Delete an item by its name or SKU. At least one must be provided.",
            params={
                "name": _string("name", "The name of the item to delete", False),
                "sku": _string("sku", "The SKU of the item to delete", False),
            },
        ),
    ]
