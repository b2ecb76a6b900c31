"""对外 API 服务模块。

提供简化的函数接口供上层应用调用：
- process_prompt: 经由模型的自然语言入口；
- 其余函数直接操作条目目录（不经过模型），返回 ItemView 字典。
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from catalog_agent.agents.orchestrator import ConversationOrchestrator
from catalog_agent.catalog.service import CatalogService
from catalog_agent.config.settings import settings
from catalog_agent.domain.items import Item, ItemFields, ItemStore, ItemView
from catalog_agent.infrastructure.logging.logger import logger
from catalog_agent.infrastructure.storage.conversation_cache import ConversationCache
from catalog_agent.infrastructure.storage.json_store import JsonItemStore
from catalog_agent.infrastructure.storage.memory_store import InMemoryItemStore
from catalog_agent.infrastructure.storage.seed import seed_demo_items
from catalog_agent.providers import create_provider


_catalog: Optional[CatalogService] = None
_orchestrator: Optional[ConversationOrchestrator] = None

Price = Union[Decimal, float, int, str]


def get_default_catalog() -> CatalogService:
    """获取默认的条目目录实例（单例），存储实现由 storage_backend 决定。"""
    global _catalog
    if _catalog is None:
        store: ItemStore
        if settings.storage_backend == "json":
            store = JsonItemStore(root=settings.storage_root)
        else:
            store = InMemoryItemStore()
        _catalog = CatalogService(store)
        if settings.seed_demo_items:
            seeded = seed_demo_items(_catalog)
            if seeded:
                logger.info("Seeded demo items", extra={"extra": {"count": seeded}})
    return _catalog


def get_default_orchestrator() -> ConversationOrchestrator:
    """获取默认的会话编排器实例（单例）。"""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = ConversationOrchestrator(
            catalog=get_default_catalog(),
            provider_client=create_provider(),
            conversations=ConversationCache(
                max_entries=settings.conversation_max_entries,
                ttl_seconds=settings.conversation_ttl_seconds,
            ),
        )
    return _orchestrator


def process_prompt(prompt: str, conversation_id: Optional[str] = None) -> Dict[str, Any]:
    """运行一轮目录管理对话。

    Args:
        prompt: 用户输入内容
        conversation_id: 会话ID（可选，不提供则创建新会话）

    Returns:
        包含 conversation_id、transcript、last_action、affected_item 的字典

    Raises:
        各种 domain.exceptions 中定义的异常
    """
    try:
        result = get_default_orchestrator().process(prompt, conversation_id=conversation_id)
        return result.to_dict()
    except Exception as e:
        logger.error(f"Prompt failed: {e}", extra={"extra": {
            "conversation_id": conversation_id,
            "error": str(e),
        }})
        raise


def _view(item: Optional[Item]) -> Optional[Dict[str, Any]]:
    return ItemView.from_item(item).to_dict() if item else None


def _fields(name: str, description: str, price: Price, sku: str) -> ItemFields:
    return ItemFields(name=name, description=description, price=price, sku=sku)


def list_items() -> List[Dict[str, Any]]:
    """按创建时间倒序列出全部条目。"""
    return [_view(i) for i in get_default_catalog().list_all()]


def search_items(term: str) -> List[Dict[str, Any]]:
    return [_view(i) for i in get_default_catalog().search(term)]


def find_item_by_name(name: str) -> Optional[Dict[str, Any]]:
    """名称恰好匹配一条时返回该条目，否则返回 None。"""
    return _view(get_default_catalog().find_by_name(name))


def find_items_by_name(name: str) -> List[Dict[str, Any]]:
    return [_view(i) for i in get_default_catalog().find_all_by_name(name)]


def find_item_by_sku(sku: str) -> Optional[Dict[str, Any]]:
    return _view(get_default_catalog().find_by_sku(sku))


def create_item(name: str, description: str, price: Price, sku: str) -> Dict[str, Any]:
    """创建条目。

    Raises:
        ConflictError: SKU 已存在（大小写不敏感）。
        ValidationError: 字段为空或价格不大于 0。
    """
    return _view(get_default_catalog().create(_fields(name, description, price, sku)))


def update_item(
    identifier: str,
    is_sku: bool,
    name: str,
    description: str,
    price: Price,
    sku: str,
) -> Optional[Dict[str, Any]]:
    """按名称或 SKU 更新条目，找不到时返回 None。

    Raises:
        AmbiguousError: 按名称命中多条。
        ConflictError: 新 SKU 已被其他条目占用。
        ValidationError: 字段非法。
    """
    updated = get_default_catalog().update(identifier, is_sku, _fields(name, description, price, sku))
    return _view(updated)


def delete_item_by_name(name: str) -> bool:
    return get_default_catalog().delete_by_name(name)


def delete_item_by_sku(sku: str) -> bool:
    return get_default_catalog().delete_by_sku(sku)
