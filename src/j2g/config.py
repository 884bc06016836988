"""
转发器配置模块

配置来源优先级（低 -> 高）：
    默认值 < YAML 配置文件 < 环境变量（含 .env）< 命令行参数
"""

import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from loguru import logger

from j2g.domain.enums import GelfConnection
from j2g.domain.errors import ConfigError
from j2g.transport.gelf import DEFAULT_MAX_CHUNK_SIZE_LAN, DEFAULT_MAX_CHUNK_SIZE_WAN, GelfConfig

# 默认配置文件路径
DEFAULT_CONFIG_FILE = Path("/etc/j2g/config.yaml")

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

# 环境变量 -> 配置字段
_ENV_KEYS = {
    "log_level": ("J2G_LOG_LEVEL",),
    "gelf_host": ("J2G_GELF_HOST", "GELF_HOST"),
    "gelf_port": ("J2G_GELF_PORT", "GELF_PORT"),
    "gelf_connection": ("J2G_GELF_CONNECTION",),
    "gelf_max_chunk_size_wan": ("J2G_GELF_MAX_CHUNK_SIZE_WAN",),
    "gelf_max_chunk_size_lan": ("J2G_GELF_MAX_CHUNK_SIZE_LAN",),
    "gelf_compress": ("J2G_GELF_COMPRESS",),
    "wait_timeout": ("J2G_WAIT_TIMEOUT",),
    "advance_error_limit": ("J2G_ADVANCE_ERROR_LIMIT",),
    "journal_local_only": ("J2G_JOURNAL_LOCAL_ONLY",),
    "journal_directory": ("J2G_JOURNAL_DIRECTORY",),
}


def _load_env_file() -> None:
    """加载当前目录下的 .env（不覆盖已有环境变量）"""
    env_path = Path.cwd() / ".env"
    if env_path.exists():
        load_dotenv(env_path, override=False)


def _get_env_value(*keys: str) -> str | None:
    """按优先顺序读取环境变量"""
    for key in keys:
        value = os.getenv(key)
        if value is not None and value != "":
            return value
    return None


def _load_env_config() -> dict[str, Any]:
    """读取环境变量配置（原始字符串，由 _coerce 统一转换）"""
    env_config: dict[str, Any] = {}
    for name, keys in _ENV_KEYS.items():
        value = _get_env_value(*keys)
        if value is not None:
            env_config[name] = value
    return env_config


def _load_file_config(path: Path | None) -> dict[str, Any]:
    """读取 YAML 配置文件；显式指定的文件不存在时报错"""
    explicit = path is not None
    path = path or _default_config_path()
    if not path.exists():
        if explicit:
            raise ConfigError(f"配置文件不存在: {path}", config_key="config")
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"加载配置文件失败: {e}", config_key="config") from e

    if not isinstance(data, dict):
        raise ConfigError(f"配置文件格式无效: {path}", config_key="config")

    logger.info("已加载配置文件: {}", path)
    # 兼容连字符写法（与命令行参数一致）
    return {str(k).replace("-", "_"): v for k, v in data.items()}


def _default_config_path() -> Path:
    env_path = _get_env_value("J2G_CONFIG_FILE")
    return Path(env_path) if env_path else DEFAULT_CONFIG_FILE


def _coerce(name: str, value: Any, default: Any) -> Any:
    """按默认值类型转换配置值"""
    if value is None or isinstance(default, str):
        return value if value is None else str(value)
    try:
        if isinstance(default, bool):
            if isinstance(value, str):
                return value.strip().lower() in ("1", "true", "yes", "on")
            return bool(value)
        if isinstance(default, int):
            return int(value)
        if isinstance(default, float):
            return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"配置项 {name} 的值无效: {value!r}", config_key=name) from e
    return value


@dataclass
class ForwarderConfig:
    """转发器配置"""

    # 日志
    log_level: str = "INFO"

    # GELF 端点
    gelf_host: str = "127.0.0.1"
    gelf_port: int = 12201
    gelf_connection: str = GelfConnection.WAN.value  # wan / lan
    gelf_max_chunk_size_wan: int = DEFAULT_MAX_CHUNK_SIZE_WAN
    gelf_max_chunk_size_lan: int = DEFAULT_MAX_CHUNK_SIZE_LAN
    gelf_compress: bool = True

    # 排空循环
    wait_timeout: float = 1.0  # 单次等待超时（秒），决定关闭响应延迟
    advance_error_limit: int = 16  # 连续遍历失败上限

    # journal
    journal_local_only: bool = True
    journal_directory: str = ""

    def validate(self) -> "ForwarderConfig":
        """校验配置，返回自身"""
        self.log_level = self.log_level.upper()
        if self.log_level not in LOG_LEVELS:
            raise ConfigError(
                f"无效的日志级别: {self.log_level} (可选: {', '.join(LOG_LEVELS)})",
                config_key="log_level",
            )

        self.gelf_connection = self.gelf_connection.lower()
        try:
            GelfConnection(self.gelf_connection)
        except ValueError as e:
            raise ConfigError(
                f"无效的 gelf_connection: {self.gelf_connection} (可选: wan, lan)",
                config_key="gelf_connection",
            ) from e

        if not self.gelf_host:
            raise ConfigError("gelf_host 不能为空", config_key="gelf_host")
        if not 1 <= self.gelf_port <= 65535:
            raise ConfigError(f"gelf_port 超出范围: {self.gelf_port}", config_key="gelf_port")

        for key in ("gelf_max_chunk_size_wan", "gelf_max_chunk_size_lan"):
            if getattr(self, key) <= 0:
                raise ConfigError(f"{key} 必须大于 0", config_key=key)

        if self.wait_timeout <= 0:
            raise ConfigError("wait_timeout 必须大于 0", config_key="wait_timeout")
        if self.advance_error_limit <= 0:
            raise ConfigError("advance_error_limit 必须大于 0", config_key="advance_error_limit")

        return self

    def gelf_config(self) -> GelfConfig:
        """构造 GELF 转发器配置"""
        return GelfConfig(
            host=self.gelf_host,
            port=self.gelf_port,
            connection=GelfConnection(self.gelf_connection),
            max_chunk_size_wan=self.gelf_max_chunk_size_wan,
            max_chunk_size_lan=self.gelf_max_chunk_size_lan,
            compress=self.gelf_compress,
        )

    def to_dict(self) -> dict[str, Any]:
        """转换为字典"""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ForwarderConfig":
        """从字典创建，忽略未知字段和 None 值"""
        defaults = cls()
        values: dict[str, Any] = {}
        for f in fields(cls):
            if data.get(f.name) is None:
                continue
            values[f.name] = _coerce(f.name, data[f.name], getattr(defaults, f.name))

        unknown = set(data) - {f.name for f in fields(cls)}
        if unknown:
            logger.warning("忽略未知配置项: {}", ", ".join(sorted(unknown)))

        return cls(**values)


def init_forwarder_config(config_file: Path | str | None = None, **overrides: Any) -> ForwarderConfig:
    """
    初始化转发器配置

    Args:
        config_file: YAML 配置文件路径（为空则使用 J2G_CONFIG_FILE 或默认路径）
        **overrides: 命令行参数，值为 None 的项不覆盖

    Raises:
        ConfigError: 配置文件或配置值无效
    """
    _load_env_file()

    file_config = _load_file_config(Path(config_file) if config_file else None)
    env_config = _load_env_config()
    cli_config = {k: v for k, v in overrides.items() if v is not None}

    merged_config = {**file_config, **env_config, **cli_config}
    return ForwarderConfig.from_dict(merged_config).validate()
