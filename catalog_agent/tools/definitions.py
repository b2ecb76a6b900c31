"""工具数据结构定义。

这些 dataclass 描述了“工具调用”的 schema，既用于：
- 将可用工具列表暴露给 LLM（ToolDef / ToolParam）。
- 在编排层中保存和执行模型触发的工具调用（ToolCall / ToolResult）。
"""

from dataclasses import dataclass
from typing import Dict, Any, List, Optional

from catalog_agent.domain.items import Item


@dataclass
class ToolParam:
    """单个工具参数的定义。"""

    name: str
    description: str
    required: bool
    schema: Dict[str, Any]


@dataclass
class ToolDef:
    """一个可供 LLM 调用的工具定义。"""

    name: str
    description: str
    params: Dict[str, ToolParam]

    def json_schema(self) -> Dict[str, Any]:
        """生成 JSON-schema 形式的参数描述，供各 Provider 序列化。"""

        properties: Dict[str, Any] = {}
        required: List[str] = []
        for name, param in self.params.items():
            prop = dict(param.schema or {"type": "string"})
            if param.description:
                prop["description"] = param.description
            properties[name] = prop
            if param.required:
                required.append(name)
        return {"type": "object", "properties": properties, "required": required}


@dataclass
class ToolCall:
    """模型发起的一次工具调用请求。"""

    id: str
    name: str
    arguments: Dict[str, Any]


@dataclass
class ToolResult:
    """工具执行结果。

    content 无论成功或失败都是文本，原样交还给模型；
    affected_item 只用于给调用方的结构化响应，不发送给模型。
    """

    call_id: str
    tool_name: str
    content: str
    affected_item: Optional[Item] = None
