"""LLM Provider 集成层。

该包下的模块负责：
- 定义 Provider 抽象接口 (base)。
- 维护 Provider 与模型配置 (registry)。
- 提供各厂商的具体实现 (anthropic_client、kimi_client、glm_client)。
"""

from typing import Optional

from catalog_agent.config.settings import settings
from catalog_agent.providers.base import ProviderClient
from catalog_agent.providers.anthropic_client import AnthropicClient
from catalog_agent.providers.kimi_client import KimiClient
from catalog_agent.providers.glm_client import GlmClient


def create_provider(name: Optional[str] = None) -> ProviderClient:
    """根据名称创建 Provider 实例，默认取配置中的 provider。"""

    provider_name = (name or getattr(settings, "default_provider", "anthropic")).lower()
    if provider_name == "kimi":
        return KimiClient(settings)
    if provider_name == "glm":
        return GlmClient(settings)
    return AnthropicClient(settings)
