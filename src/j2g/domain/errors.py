"""
转发器域错误定义
"""

from typing import Any


class ForwarderError(Exception):
    """转发器基础错误"""

    def __init__(
        self,
        message: str,
        code: str = "FORWARDER_ERROR",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConfigError(ForwarderError):
    """配置错误"""

    def __init__(
        self,
        message: str,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code="CONFIG_ERROR", details=details)
        self.config_key = config_key


class StartupError(ForwarderError):
    """启动阶段的致命错误（打开日志源、初始定位失败）"""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, code="STARTUP_ERROR", details=details)


class LogSourceError(ForwarderError):
    """日志源操作失败"""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        errno: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code="LOG_SOURCE_ERROR", details=details)
        self.operation = operation
        self.errno = errno


class SerializationError(ForwarderError):
    """条目序列化失败"""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, code="SERIALIZATION_ERROR", details=details)


class WaiterError(ForwarderError):
    """等待器使用错误（重复装载、停止后装载）"""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, code="WAITER_ERROR", details=details)
