"""Catalog Agent 顶层包。

该包提供对话式商品目录管理的核心实现：
用户用自然语言描述需求，模型通过工具调用查询或修改条目目录，
包括配置加载、领域模型、Provider 适配、工具系统、
LangGraph 轮次编排与条目持久化等能力。
"""

from catalog_agent.api.service import process_prompt

__all__ = ["process_prompt"]
