"""
systemd journal 日志源

基于 systemd-python 的 journal.Reader。所有对底层句柄的访问都在
同一把锁内完成，任何退出路径（包括异常）都会释放锁；close() 会等待
正在进行的 wait() 返回后才释放句柄。
"""

import contextlib
import math
import threading
from collections.abc import Iterator
from typing import TYPE_CHECKING, Any

from loguru import logger

from j2g.domain.enums import AdvanceOutcome
from j2g.domain.errors import LogSourceError, StartupError
from j2g.domain.models import Record, WaitOutcome
from j2g.source.base import INDEFINITE_WAIT

if TYPE_CHECKING:
    from loguru import Logger

# sd_journal_wait(3) 返回值
SD_JOURNAL_NOP = 0
SD_JOURNAL_APPEND = 1
SD_JOURNAL_INVALIDATE = 2

_WAIT_EVENTS = {
    SD_JOURNAL_NOP: WaitOutcome.no_change(),
    SD_JOURNAL_APPEND: WaitOutcome.appended(),
    SD_JOURNAL_INVALIDATE: WaitOutcome.invalidated(),
}


def _decode(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


class JournalSource:
    """
    journald 日志源

    包装一个已打开的 journal.Reader（或兼容对象），对外提供 LogSource 协议。
    """

    def __init__(self, reader: Any, log: "Logger | None" = None):
        self._reader = reader
        self._lock = threading.Lock()
        self._closed = False
        self._log = log or logger.bind(component="journal")

    @classmethod
    def open(
        cls,
        local_only: bool = True,
        directory: str = "",
        log: "Logger | None" = None,
    ) -> "JournalSource":
        """
        打开本机 journal

        Args:
            local_only: 只读取本机产生的日志
            directory: 指定 journal 目录（为空则使用系统默认位置）

        Raises:
            StartupError: 缺少 systemd-python 或 journal 无法打开
        """
        try:
            from systemd import journal
        except ImportError as e:
            raise StartupError(
                "未安装 systemd-python，无法读取 journald (pip install 'j2g[journal]')"
            ) from e

        kwargs: dict[str, Any] = {}
        if directory:
            kwargs["path"] = directory
        else:
            kwargs["flags"] = journal.LOCAL_ONLY if local_only else 0

        try:
            reader = journal.Reader(**kwargs)
        except OSError as e:
            raise StartupError(f"打开 journal 失败: {e}", details={"errno": e.errno}) from e

        source = cls(reader, log=log)
        source._log.info("journal 已打开: {}", directory or ("local" if local_only else "all"))
        return source

    @property
    def closed(self) -> bool:
        return self._closed

    @contextlib.contextmanager
    def _access(self, operation: str) -> Iterator[Any]:
        """独占访问底层句柄，OSError 统一转换为 LogSourceError"""
        with self._lock:
            if self._closed:
                raise LogSourceError("journal 已关闭", operation=operation)
            try:
                yield self._reader
            except OSError as e:
                raise LogSourceError(
                    f"{operation} 失败: {e}", operation=operation, errno=e.errno
                ) from e

    def seek_to_time(self, usec: int) -> None:
        with self._access("seek_realtime") as reader:
            reader.seek_realtime(int(usec))

    def advance(self) -> AdvanceOutcome:
        with self._access("next") as reader:
            moved = reader._next()
        return AdvanceOutcome.NEW_ENTRY if moved else AdvanceOutcome.NO_NEW_ENTRY

    def current_record(self) -> Record:
        with self._access("get_all") as reader:
            fields = reader._get_all()

        record: Record = {}
        for name, value in fields.items():
            # 重复字段取最后一个值
            if isinstance(value, list):
                if not value:
                    continue
                value = value[-1]
            record[str(name)] = _decode(value)
        return record

    def wait(self, timeout: float = INDEFINITE_WAIT) -> WaitOutcome:
        seconds = None if math.isinf(timeout) else max(0.0, timeout)
        try:
            with self._access("wait") as reader:
                code = reader.wait(seconds)
        except LogSourceError as e:
            if e.errno is None:
                raise
            return WaitOutcome.unknown(-e.errno)
        return _WAIT_EVENTS.get(code) or WaitOutcome.unknown(code)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._reader.close()
        self._log.info("journal 已关闭")
