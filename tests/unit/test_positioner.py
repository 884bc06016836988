"""
游标定位器测试
"""

import pytest

from j2g.domain.errors import LogSourceError, StartupError
from j2g.engine.positioner import CursorPositioner


class TestCursorPositioner:
    """启动定位"""

    def test_seeks_to_current_time(self, make_source):
        """按时钟给出的当前时间定位"""
        source = make_source()
        positioner = CursorPositioner(clock=lambda: 1_700_000_000_123_456)

        usec = positioner.position(source)

        assert usec == 1_700_000_000_123_456
        assert source.seeks == [1_700_000_000_123_456]

    def test_default_clock_is_microseconds(self, make_source):
        """默认时钟返回微秒级时间戳"""
        source = make_source()

        usec = CursorPositioner().position(source)

        # 2020 年之后、且量级为微秒
        assert usec > 1_577_836_800 * 1_000_000
        assert usec < 10_000_000_000 * 1_000_000

    def test_seek_failure_is_fatal(self, make_source):
        """定位失败转换为启动错误"""
        source = make_source(seek_error=LogSourceError("seek 失败", operation="seek_realtime", errno=22))
        positioner = CursorPositioner(clock=lambda: 42)

        with pytest.raises(StartupError) as exc_info:
            positioner.position(source)

        assert exc_info.value.code == "STARTUP_ERROR"
        assert exc_info.value.details == {"usec": 42}
        assert isinstance(exc_info.value.__cause__, LogSourceError)
