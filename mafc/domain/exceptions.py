"""统一业务异常模型。

所有跨模块抛出的业务级错误都继承自 BusinessError，
UI 层只需捕获 BusinessError 并展示其 message 即可。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "MISSING_API_KEY"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 body、model 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class ConfigurationError(BusinessError):
    """凭据缺失等配置问题，在发出任何网络请求之前抛出。"""


class ValidationError(BusinessError):
    """用户输入的设置项校验失败。"""


class NetworkError(BusinessError):
    """网络层错误，例如连接失败、DNS 解析失败等。"""


class ApiError(BusinessError):
    """生成端点返回非 2xx 状态时抛出，携带状态码与响应体。"""


class ProtocolError(BusinessError):
    """响应格式合法但缺少预期数据（例如没有 candidates）。"""
