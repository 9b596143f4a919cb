"""kb_chat 顶层包。

该包提供知识库聊天前端的客户端核心：多会话管理、把会话上下文发送给
远端 Agent、跟踪知识库文档上传，以及经由 Agent 发送会话邮件摘要。
"""

from kb_chat.api.session import ChatSession, create_session

__all__ = ["ChatSession", "create_session"]
