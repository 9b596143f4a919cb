"""统一业务异常模型。

所有跨模块抛出的业务级错误都应该继承自 BusinessError，
便于在会话层或展示层做统一捕获与用户提示。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "EMPTY_MESSAGE"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 trace_id、conversation_id 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class NetworkError(BusinessError):
    """调用 Agent 或知识库端点时的传输失败，例如连接被拒、DNS 失败、超时。"""


class ApiError(BusinessError):
    """Agent / 知识库端点返回非 2xx，或 Agent 响应体不是 JSON 对象。"""


class RateLimitError(BusinessError):
    """Agent 端点返回 HTTP 429。

    不做自动重试：发送周期把它与其他远端错误一样收敛为一条错误提示消息。
    """


class ValidationError(BusinessError):
    """用户意图或配置在发起网络调用之前即被拒绝。

    例如空消息、空收件人、会话无消息、同一会话已有发送进行中、
    删除仍在上传的文档、缺少 ragId。抛出时不修改会话或文档状态。
    """
