"""
j2g: journald 到 GELF 的日志转发器

持续读取本机 systemd journal，将启动之后追加的条目逐条转发到
GELF 端点（UDP），收到 SIGINT / SIGTERM 后在一个等待周期内干净退出。
"""

__version__ = "0.1.0"
