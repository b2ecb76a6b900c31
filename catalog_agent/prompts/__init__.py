"""系统提示词加载工具。

按语言(locale) 从 prompts/<locale> 目录读取条目助手的 system prompt
文本，用于构造 ChatMessage(role="system")。提示词不写入会话历史，
每次模型调用时由编排器重新附加。
"""

from functools import lru_cache
from pathlib import Path


PROMPTS_DIR = Path(__file__).resolve().parent
PROMPT_FILE = "catalog_assistant_system.md"


@lru_cache(maxsize=None)
def load_system_prompt(locale: str = "en") -> str:
    """加载指定语言的系统提示词；未知语言回退到英文。"""

    fname = PROMPTS_DIR / locale / PROMPT_FILE
    if not fname.exists():
        fname = PROMPTS_DIR / "en" / PROMPT_FILE
    return fname.read_text(encoding="utf-8")
