"""提示词模板加载工具。

按语言(locale) 从 prompts/<locale> 目录读取模板文本，例如邮件发送时
交给 Agent 的自然语言指令。
"""

from pathlib import Path


PROMPTS_DIR = Path(__file__).resolve().parent


def load_prompt(name: str, locale: str = "en") -> str:
    fname = PROMPTS_DIR / locale / f"{name}.md"
    return fname.read_text(encoding="utf-8").strip()
