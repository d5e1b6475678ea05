"""统一业务异常模型。

所有跨模块抛出的业务级错误都继承自 BusinessError，
Transport 层会在公开接口处把它们转换为失败的 ChatCompletionResult，
CLI 层只需要打印 message 并以非零状态退出。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "STORE_WRITE_ERROR"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如响应 body、重定向地址等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class InvalidURLError(BusinessError):
    """base URL 不符合 scheme://host[/path] 格式。"""


class NetworkError(BusinessError):
    """网络层错误，例如 DNS 失败、连接失败、超时等。"""


class ApiError(BusinessError):
    """服务端返回非 200 状态码时抛出，http_status 为实际状态码。"""


class InvalidResponseFormatError(BusinessError):
    """200 响应的 JSON 结构与 chat/completions 约定不符。"""


class MalformedMessageError(BusinessError):
    """单条消息缺少 role/content 字段或字段类型错误。"""


class CorruptHistoryError(BusinessError):
    """本地会话历史文件无法解析。"""


class ConfigError(BusinessError):
    """配置项未知或取值非法。"""
