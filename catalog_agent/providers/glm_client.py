"""GLM / BigModel Provider 适配器。

接口风格与 OpenAI/Kimi 相同，均使用 chat/completions 端点。
"""

from catalog_agent.providers.openai_compat import OpenAICompatClient
from catalog_agent.providers.registry import GLM_CONFIG


class GlmClient(OpenAICompatClient):
    name = "glm"
    config = GLM_CONFIG
    api_key_field = "glm_api_key"
    base_url_field = "glm_base_url"
