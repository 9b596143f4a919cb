"""领域层模型与协议。

包含：
- identity: 进程内单调递增的 ID 生成器与统一时钟。
- conversation: 会话与消息模型及 ConversationStore 抽象。
- documents: 知识库文档及上传文件模型。
- models: Agent 请求/响应与操作结果模型。
- exceptions: 业务异常类型定义。
"""
