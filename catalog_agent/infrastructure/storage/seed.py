"""示例数据：存储为空时写入几条演示条目。"""

from decimal import Decimal
from typing import List

from catalog_agent.catalog.service import CatalogService
from catalog_agent.domain.items import ItemFields


DEMO_ITEMS: List[ItemFields] = [
    ItemFields(
        name="Wireless Headphones",
        description="High-quality wireless headphones with noise cancellation and 30-hour battery life.",
        price=Decimal("199.99"),
        sku="WH-001",
    ),
    ItemFields(
        name="USB-C Cable",
        description="Durable USB-C cable with fast charging support. Works with multiple devices.",
        price=Decimal("19.99"),
        sku="USB-C-001",
    ),
    ItemFields(
        name="Mechanical Keyboard",
        description="Premium mechanical keyboard with RGB lighting and mechanical switches.",
        price=Decimal("149.99"),
        sku="MK-001",
    ),
    ItemFields(
        name="Wireless Mouse",
        description="Ergonomic wireless mouse with precision tracking and long battery life.",
        price=Decimal("49.99"),
        sku="WM-001",
    ),
    ItemFields(
        name="Monitor Stand",
        description="Adjustable monitor stand with storage drawer for cables and accessories.",
        price=Decimal("79.99"),
        sku="MS-001",
    ),
    ItemFields(
        name="Portable SSD",
        description="1TB portable SSD with USB-C connection. Perfect for fast file transfers and backups.",
        price=Decimal("129.99"),
        sku="SSD-001",
    ),
]


def seed_demo_items(catalog: CatalogService) -> int:
    """仅当存储为空时写入示例条目，返回写入条数。"""

    if catalog.count():
        return 0
    for fields in DEMO_ITEMS:
        catalog.create(fields)
    return len(DEMO_ITEMS)
