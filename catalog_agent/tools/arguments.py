"""工具参数解析。

模型给出的 arguments 是未经校验的字典（可能缺字段、类型不对，
甚至是无法解析的原始字符串），虽然工具 schema 已经标注了必填项。
这里为每个工具定义一个 pydantic 模型，parse_arguments 返回
“校验通过的参数模型”或 ArgumentError 二者之一，调用方按类型分支。
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, ValidationError as PydanticValidationError
from pydantic import field_validator, model_validator

from catalog_agent.domain.items import ItemFields
from .catalog_tools import CREATE_ITEM, DELETE_ITEM, FIND_ITEM, LIST_ITEMS, UPDATE_ITEM


PRICE_MESSAGE = "Price is required and must be greater than 0"

_FIELD_MESSAGES: Dict[str, str] = {
    "name": "Name is required",
    "description": "Description is required",
    "price": PRICE_MESSAGE,
    "sku": "SKU is required",
    "identifier": "Item identifier (name or SKU) is required",
    "is_sku": "is_sku must be true or false",
    "search_term": "search_term must be a string",
}


@dataclass
class ArgumentError:
    tool_name: str
    message: str


class _ToolArgs(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")


class FindItemArgs(_ToolArgs):
    name: Optional[str] = None
    sku: Optional[str] = None

    @model_validator(mode="after")
    def _require_identifier(self) -> "FindItemArgs":
        if not self.name and not self.sku:
            raise ValueError("Either item name or SKU must be provided")
        return self


class DeleteItemArgs(FindItemArgs):
    pass


class ListItemsArgs(_ToolArgs):
    search_term: Optional[str] = None


class _ItemFieldArgs(_ToolArgs):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = None
    sku: Optional[str] = None

    @field_validator("price", mode="before")
    @classmethod
    def _reject_bool(cls, v: Any) -> Any:
        if isinstance(v, bool):
            raise ValueError(PRICE_MESSAGE)
        return v

    @model_validator(mode="after")
    def _require_fields(self) -> "_ItemFieldArgs":
        self._check_target()
        if not self.name:
            raise ValueError(_FIELD_MESSAGES["name"])
        if not self.description:
            raise ValueError(_FIELD_MESSAGES["description"])
        if self.price is None or not self.price.is_finite() or self.price <= 0:
            raise ValueError(PRICE_MESSAGE)
        if not self.sku:
            raise ValueError(_FIELD_MESSAGES["sku"])
        return self

    def _check_target(self) -> None:
        pass

    def to_fields(self) -> ItemFields:
        return ItemFields(
            name=self.name or "",
            description=self.description or "",
            price=self.price if self.price is not None else Decimal(0),
            sku=self.sku or "",
        )


class CreateItemArgs(_ItemFieldArgs):
    pass


class UpdateItemArgs(_ItemFieldArgs):
    identifier: Optional[str] = None
    is_sku: bool = False

    def _check_target(self) -> None:
        if not self.identifier:
            raise ValueError(_FIELD_MESSAGES["identifier"])


ToolArguments = Union[FindItemArgs, ListItemsArgs, CreateItemArgs, UpdateItemArgs, DeleteItemArgs]

ARGUMENT_MODELS: Dict[str, Type[_ToolArgs]] = {
    FIND_ITEM: FindItemArgs,
    LIST_ITEMS: ListItemsArgs,
    CREATE_ITEM: CreateItemArgs,
    UPDATE_ITEM: UpdateItemArgs,
    DELETE_ITEM: DeleteItemArgs,
}


def _describe(exc: PydanticValidationError) -> str:
    err = exc.errors()[0]
    cause = (err.get("ctx") or {}).get("error")
    if err.get("type") == "value_error" and cause is not None:
        return str(cause)
    loc = err.get("loc") or ()
    if loc and loc[0] in _FIELD_MESSAGES:
        return _FIELD_MESSAGES[str(loc[0])]
    return str(err.get("msg") or exc)


def parse_arguments(tool_name: str, raw: Any) -> Union[ToolArguments, ArgumentError]:
    model = ARGUMENT_MODELS.get(tool_name)
    if model is None:
        return ArgumentError(tool_name=tool_name, message=f"Unknown tool: {tool_name}")
    payload = raw if isinstance(raw, dict) else {}
    try:
        return model.model_validate(payload)  # type: ignore[return-value]
    except PydanticValidationError as exc:
        return ArgumentError(tool_name=tool_name, message=_describe(exc))
