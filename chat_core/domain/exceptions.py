"""统一业务异常模型。

所有跨模块抛出的业务级错误都应该继承自 BusinessError，
便于在 API 层或展示层做统一捕获与用户提示。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "STORE_READ_ERROR"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 trace_id、chat_id 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class UnauthorizedError(BusinessError):
    """会话不属于调用者，或所有权记录不存在。

    与“会话不存在”刻意不可区分，避免向非所有者泄露会话是否存在。
    """

    def __init__(self, chat_id: str = ""):
        super().__init__(code="CHAT_NOT_FOUND", message="chat not found", http_status=404, chat_id=chat_id)


class BackingStoreError(BusinessError):
    """与键值存储（Redis）通信失败，包括事务执行失败。"""

    def __init__(self, code: str, message: str, **extra):
        super().__init__(code=code, message=message, http_status=500, **extra)


class CompletionBackendError(BusinessError):
    """补全后端调用失败、返回非 2xx、响应无法解析或没有候选回答。

    不解析后端自身的错误码，也不做自动重试。
    """

    def __init__(self, code: str, message: str, **extra):
        super().__init__(code=code, message=message, http_status=502, **extra)


class ValidationError(BusinessError):
    """参数或配置校验失败。"""
