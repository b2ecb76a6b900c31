"""Provider 与模型配置。

本模块将“逻辑模型名”与“具体厂商模型名”解耦：

- 逻辑名（logical_name）：在代码里使用的统一名称，例如 "catalog-chat"。
- provider_model：厂商实际提供的模型 ID，例如 "claude-3-5-haiku-latest"。

上层只关心逻辑名，具体用哪个底层模型由这里集中配置，便于后续升级或切换。"""

from dataclasses import dataclass
from typing import Dict

from catalog_agent.domain.exceptions import ValidationError


@dataclass
class ModelConfig:
    """单个逻辑模型的配置。"""

    logical_name: str
    provider_model: str
    max_tokens: int
    default_temperature: float


@dataclass
class ProviderConfig:
    """某个 Provider 的整体配置。"""

    name: str
    base_url: str
    models: Dict[str, ModelConfig]

    def model(self, logical_name: str) -> ModelConfig:
        try:
            return self.models[logical_name]
        except KeyError:
            raise ValidationError(
                code="UNKNOWN_MODEL",
                message=f"Unknown model {logical_name!r} for provider {self.name}",
            ) from None


ANTHROPIC_CONFIG = ProviderConfig(
    name="anthropic",
    base_url="https://api.anthropic.com/v1",
    models={
        "catalog-chat": ModelConfig(
            logical_name="catalog-chat",
            provider_model="claude-3-5-haiku-latest",
            max_tokens=2048,
            default_temperature=0.7,
        )
    },
)

KIMI_CONFIG = ProviderConfig(
    name="kimi",
    base_url="https://api.moonshot.cn/v1",
    models={
        "catalog-chat": ModelConfig(
            logical_name="catalog-chat",
            provider_model="kimi-k2-turbo-preview",
            max_tokens=2048,
            default_temperature=0.7,
        )
    },
)

GLM_CONFIG = ProviderConfig(
    name="glm",
    base_url="https://open.bigmodel.cn/api/paas/v4",
    models={
        "catalog-chat": ModelConfig(
            logical_name="catalog-chat",
            provider_model="glm-4.6",
            max_tokens=2048,
            default_temperature=0.7,
        )
    },
)

