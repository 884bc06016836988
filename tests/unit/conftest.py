"""
单元测试公共夹具

提供可编程的假日志源、记录型转发器和 loguru 日志捕获。
"""

import asyncio
import math
import threading
from collections import deque
from collections.abc import Callable

import pytest
from loguru import logger

from j2g.config import _ENV_KEYS
from j2g.domain.enums import AdvanceOutcome
from j2g.domain.errors import LogSourceError
from j2g.domain.models import Record, WaitOutcome
from j2g.source.base import INDEFINITE_WAIT
from j2g.utils.json import loads


class FakeLogSource:
    """
    假日志源

    - entries: 定位之后已存在的条目
    - advance_errors: 第 N 次 advance() 调用抛错（从 1 开始）
    - fetch_errors: 第 N 条条目读取失败（从 1 开始）
    - wait_outcomes: 依次返回的等待结果，用尽后按是否有新条目返回
    - on_wait: 每次 wait() 开始时在等待线程中回调，参数为调用序号
    """

    def __init__(
        self,
        entries: list[Record] | None = None,
        advance_errors: set[int] | None = None,
        fetch_errors: set[int] | None = None,
        wait_outcomes: list[WaitOutcome] | None = None,
        on_wait: Callable[[int], None] | None = None,
        seek_error: Exception | None = None,
        wait_error: Exception | None = None,
    ):
        self._entries = list(entries or [])
        self._position = -1
        self._lock = threading.Lock()
        self._changed = threading.Event()
        self._outcomes = deque(wait_outcomes or [])

        self.advance_errors = advance_errors or set()
        self.fetch_errors = fetch_errors or set()
        self.on_wait = on_wait
        self.seek_error = seek_error
        self.wait_error = wait_error

        self.seeks: list[int] = []
        self.advance_calls = 0
        self.moves = 0
        self.fetched_positions: list[int] = []
        self.wait_calls = 0
        self.wait_timeouts: list[float] = []
        self.active_waits = 0
        self.max_concurrent_waits = 0
        self.closed = False
        self.close_calls = 0
        self.closed_while_waiting = False

    def append(self, record: Record) -> None:
        """追加一条新条目并唤醒等待"""
        with self._lock:
            self._entries.append(record)
        self._changed.set()

    def seek_to_time(self, usec: int) -> None:
        if self.seek_error is not None:
            raise self.seek_error
        self.seeks.append(usec)

    def advance(self) -> AdvanceOutcome:
        self.advance_calls += 1
        if self.advance_calls in self.advance_errors:
            raise LogSourceError("注入的遍历错误", operation="next")
        with self._lock:
            if self._position + 1 < len(self._entries):
                self._position += 1
                self.moves += 1
                return AdvanceOutcome.NEW_ENTRY
        return AdvanceOutcome.NO_NEW_ENTRY

    def current_record(self) -> Record:
        position = self._position
        self.fetched_positions.append(position)
        if position + 1 in self.fetch_errors:
            raise LogSourceError("注入的读取错误", operation="get_all")
        with self._lock:
            return dict(self._entries[position])

    def wait(self, timeout: float = INDEFINITE_WAIT) -> WaitOutcome:
        with self._lock:
            self.active_waits += 1
            self.max_concurrent_waits = max(self.max_concurrent_waits, self.active_waits)
            self.wait_calls += 1
            call = self.wait_calls
            self.wait_timeouts.append(timeout)
        try:
            if self.on_wait is not None:
                self.on_wait(call)
            if self.wait_error is not None:
                raise self.wait_error
            if self._outcomes:
                return self._outcomes.popleft()
            changed = self._changed.wait(None if math.isinf(timeout) else timeout)
            self._changed.clear()
            return WaitOutcome.appended() if changed else WaitOutcome.no_change()
        finally:
            with self._lock:
                self.active_waits -= 1

    def close(self) -> None:
        with self._lock:
            if self.active_waits:
                self.closed_while_waiting = True
        self.close_calls += 1
        self.closed = True


class RecordingForwarder:
    """记录收到的每条负载"""

    def __init__(self):
        self.payloads: list[bytes] = []
        self.started = False
        self.stopped = False

    async def start(self) -> None:
        self.started = True

    async def stop(self) -> None:
        self.stopped = True

    def send(self, payload: bytes) -> None:
        self.payloads.append(payload)

    @property
    def records(self) -> list[dict]:
        return [loads(p) for p in self.payloads]

    @property
    def messages(self) -> list[str]:
        return [r.get("MESSAGE") for r in self.records]


def set_threadsafe(loop: asyncio.AbstractEventLoop, token) -> None:
    """从等待线程中触发取消令牌"""
    loop.call_soon_threadsafe(token.set, "test")


@pytest.fixture
def make_source():
    """假日志源工厂"""
    return FakeLogSource


@pytest.fixture
def forwarder():
    return RecordingForwarder()


@pytest.fixture
def log_records():
    """捕获 loguru 日志记录"""
    records: list[dict] = []
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    yield records
    logger.remove(handler_id)


@pytest.fixture
def threadsafe_set():
    return set_threadsafe


@pytest.fixture
def isolated_env(monkeypatch, tmp_path):
    """清空相关环境变量，并在空的临时目录中运行"""
    for keys in _ENV_KEYS.values():
        for key in keys:
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("J2G_CONFIG_FILE", str(tmp_path / "missing.yaml"))
    monkeypatch.chdir(tmp_path)
    return tmp_path
