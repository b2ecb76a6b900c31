"""工具分发与执行。

ToolExecutor 把模型发起的 ToolCall 分发到对应处理函数。任何失败
（参数非法、冲突、歧义、未知工具、意外异常）都转换成文本结果，
模型总能拿到一段回复；只有取消信号会继续向上抛出。
"""

import json
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from catalog_agent.catalog.service import CatalogService
from catalog_agent.domain.cancellation import CancellationToken
from catalog_agent.domain.exceptions import BusinessError, OperationCancelled
from catalog_agent.domain.items import Item, ItemView
from catalog_agent.infrastructure.logging.logger import logger
from .arguments import (
    ArgumentError,
    CreateItemArgs,
    DeleteItemArgs,
    FindItemArgs,
    ListItemsArgs,
    UpdateItemArgs,
    parse_arguments,
)
from .catalog_tools import CREATE_ITEM, DELETE_ITEM, FIND_ITEM, LIST_ITEMS, TOOL_NAMES, UPDATE_ITEM
from .definitions import ToolCall, ToolResult


Outcome = Tuple[str, Optional[Item]]
ToolFunc = Callable[[Any, Optional[CancellationToken]], Outcome]


def _dump(item: Item) -> str:
    return json.dumps(ItemView.from_item(item).to_dict(), ensure_ascii=False)


def _dump_many(items: Iterable[Item]) -> str:
    return json.dumps([ItemView.from_item(i).to_dict() for i in items], ensure_ascii=False)


class ToolExecutor:
    def __init__(self, tools: Dict[str, ToolFunc], declared: Iterable[str] = TOOL_NAMES):
        missing = set(declared) - set(tools)
        undeclared = set(tools) - set(declared)
        if missing or undeclared:
            raise ValueError(
                f"tool handlers out of sync with declarations: missing={sorted(missing)} "
                f"undeclared={sorted(undeclared)}"
            )
        self._tools = tools

    def execute(self, call: ToolCall, cancel: Optional[CancellationToken] = None) -> ToolResult:
        func = self._tools.get(call.name)
        if func is None:
            return ToolResult(call_id=call.id, tool_name=call.name, content=f"Unknown tool: {call.name}")
        parsed = parse_arguments(call.name, call.arguments)
        if isinstance(parsed, ArgumentError):
            return ToolResult(call_id=call.id, tool_name=call.name, content=parsed.message)
        try:
            content, affected = func(parsed, cancel)
        except OperationCancelled:
            raise
        except BusinessError as e:
            content, affected = e.message, None
        except Exception as e:
            logger.exception(
                "Unexpected tool failure",
                extra={"extra": {"tool_name": call.name, "tool_call_id": call.id}},
            )
            content, affected = f"Error executing {call.name}: {e}", None
        return ToolResult(call_id=call.id, tool_name=call.name, content=content, affected_item=affected)


def _make_find_tool(catalog: CatalogService) -> ToolFunc:
    def _run(args: FindItemArgs, cancel: Optional[CancellationToken]) -> Outcome:
        if args.name:
            matches = catalog.find_all_by_name(args.name, cancel)
            if not matches:
                return f"No items found with name '{args.name}'", None
            if len(matches) > 1:
                skus = ", ".join(m.sku for m in matches)
                return (
                    f"Multiple items found with name '{args.name}'. "
                    f"Please specify which one using its SKU. Available SKUs: {skus}",
                    None,
                )
            return _dump(matches[0]), matches[0]
        item = catalog.find_by_sku(args.sku or "", cancel)
        if item is None:
            return f"No item found with SKU '{args.sku}'", None
        return _dump(item), item

    return _run


def _make_list_tool(catalog: CatalogService) -> ToolFunc:
    def _run(args: ListItemsArgs, cancel: Optional[CancellationToken]) -> Outcome:
        if args.search_term:
            items = catalog.search(args.search_term, cancel)
        else:
            items = catalog.list_all(cancel)
        if not items:
            return "No items found", None
        return _dump_many(items), items[0]

    return _run


def _make_create_tool(catalog: CatalogService) -> ToolFunc:
    def _run(args: CreateItemArgs, cancel: Optional[CancellationToken]) -> Outcome:
        item = catalog.create(args.to_fields(), cancel)
        return _dump(item), item

    return _run


def _make_update_tool(catalog: CatalogService) -> ToolFunc:
    def _run(args: UpdateItemArgs, cancel: Optional[CancellationToken]) -> Outcome:
        identifier = args.identifier or ""
        item = catalog.update(identifier, args.is_sku, args.to_fields(), cancel)
        if item is None:
            kind = "SKU" if args.is_sku else "name"
            return f"Item with {kind} '{identifier}' not found", None
        return _dump(item), item

    return _run


def _make_delete_tool(catalog: CatalogService) -> ToolFunc:
    def _run(args: DeleteItemArgs, cancel: Optional[CancellationToken]) -> Outcome:
        # 删除前先取出条目，作为本次调用的受影响条目返回
        if args.name:
            identifier = f"name '{args.name}'"
            before = catalog.find_by_name(args.name, cancel)
            deleted = catalog.delete_by_name(args.name, cancel)
        else:
            identifier = f"SKU '{args.sku}'"
            before = catalog.find_by_sku(args.sku or "", cancel)
            deleted = catalog.delete_by_sku(args.sku or "", cancel)
        if not deleted:
            return f"Item with {identifier} not found", None
        return f"Item with {identifier} has been deleted successfully", before

    return _run


def catalog_tools(catalog: CatalogService) -> Dict[str, ToolFunc]:
    return {
        FIND_ITEM: _make_find_tool(catalog),
        LIST_ITEMS: _make_list_tool(catalog),
        CREATE_ITEM: _make_create_tool(catalog),
        UPDATE_ITEM: _make_update_tool(catalog),
        DELETE_ITEM: _make_delete_tool(catalog),
    }
