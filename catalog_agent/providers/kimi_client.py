"""Kimi (Moonshot) Provider 适配器。"""

from catalog_agent.providers.openai_compat import OpenAICompatClient
from catalog_agent.providers.registry import KIMI_CONFIG


class KimiClient(OpenAICompatClient):
    name = "kimi"
    config = KIMI_CONFIG
    api_key_field = "kimi_api_key"
    base_url_field = "kimi_base_url"
