"""知识库文档注册表。"""

from kb_chat.knowledge.registry import DocumentRegistry

__all__ = ["DocumentRegistry"]
