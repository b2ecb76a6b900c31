"""统一业务异常模型。

所有跨模块抛出的业务级错误都应该继承自 BusinessError，
便于在 API 层或工具层做统一捕获与用户提示。

- ValidationError / ConflictError / AmbiguousError：可恢复的业务结果，
  在对话流程中会被转换成文本交还给模型。
- UpstreamError 及其子类：模型服务不可用或响应无法解析，对当前调用是致命的。
"""

from typing import List, Sequence


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "SKU_CONFLICT"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 sku、provider 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class ValidationError(BusinessError):
    """参数或配置校验失败。"""


class InvalidArgumentError(ValidationError):
    """调用方传入的参数非法（例如空白的 prompt）。"""

    def __init__(self, message: str, **extra):
        super().__init__(code="INVALID_ARGUMENT", message=message, **extra)


class ConflictError(BusinessError):
    """SKU 与已有条目冲突（大小写不敏感）。"""

    def __init__(self, sku: str):
        super().__init__(
            code="SKU_CONFLICT",
            message=f"An item with the SKU '{sku}' already exists. Please use a different SKU.",
            http_status=409,
            sku=sku,
        )
        self.sku = sku


class AmbiguousError(BusinessError):
    """按名称解析到多个条目，需要调用方用 SKU 消歧。"""

    def __init__(self, name: str, candidate_skus: Sequence[str], action: str = "identify"):
        skus: List[str] = list(candidate_skus)
        super().__init__(
            code="AMBIGUOUS_NAME",
            message=(
                f"Multiple items found with name '{name}'. "
                f"Please specify the SKU to {action} the correct item. "
                f"Available SKUs: {', '.join(skus)}"
            ),
            http_status=409,
            name=name,
            candidate_skus=skus,
        )
        self.name = name
        self.candidate_skus = skus


class OperationCancelled(BusinessError):
    """取消信号已触发，当前操作中止。"""

    def __init__(self, message: str = "operation cancelled"):
        super().__init__(code="CANCELLED", message=message, http_status=499)


class UpstreamError(BusinessError):
    """外部模型服务失败的基类。"""


class NetworkError(UpstreamError):
    """网络层错误，例如连接失败、超时等。"""


class ApiError(UpstreamError):
    """第三方 API 返回非 2xx/429 错误时抛出。"""


class RateLimitError(UpstreamError):
    """Provider 限流错误；本项目不做自动重试，直接交给调用方。"""


class MalformedResponseError(UpstreamError):
    """Provider 返回的响应无法解析为统一模型。"""
