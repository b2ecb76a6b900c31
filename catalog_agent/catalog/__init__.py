"""条目业务层：在 ItemStore 之上提供身份解析与唯一性约束。"""

from catalog_agent.catalog.service import CatalogService, normalize_fields

__all__ = ["CatalogService", "normalize_fields"]
