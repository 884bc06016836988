"""命令行入口

支持 run（默认）、doctor、print-config 命令。
"""

import argparse
import asyncio
import json
import socket
import sys

import yaml
from loguru import logger

from j2g import __version__
from j2g.config import LOG_LEVELS, ForwarderConfig, init_forwarder_config
from j2g.domain.errors import ConfigError, StartupError

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSSSSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[component]}</cyan> - <level>{message}</level>"
)


def setup_logging(log_level: str = "INFO") -> None:
    """配置日志输出"""
    logger.remove()
    logger.configure(extra={"component": "j2g"})
    logger.add(sys.stderr, level=log_level.upper(), format=LOG_FORMAT)


def _config_overrides(args: argparse.Namespace) -> dict[str, object]:
    return {
        "log_level": args.log_level,
        "gelf_host": args.gelf_host,
        "gelf_port": args.gelf_port,
        "gelf_connection": args.gelf_connection,
        "gelf_max_chunk_size_wan": args.gelf_max_chunk_size_wan,
        "gelf_max_chunk_size_lan": args.gelf_max_chunk_size_lan,
        "wait_timeout": args.wait_timeout,
        "journal_directory": args.journal_directory,
    }


def start_forwarder(config: ForwarderConfig) -> int:
    """启动转发器，阻塞到关闭完成

    Returns:
        退出码：0 正常关闭，1 启动失败
    """
    from j2g.app.main import run_forwarder

    # 使用自定义事件循环运行，避免 asyncio.run() 覆盖信号处理
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    cancel_timeout = config.wait_timeout + 5.0

    try:
        loop.run_until_complete(run_forwarder(config))
        return 0
    except StartupError as e:
        logger.error("启动失败: {}", e)
        return 1
    except KeyboardInterrupt:
        logger.info("收到 KeyboardInterrupt，开始清理")
        return 0
    finally:
        try:
            pending = asyncio.all_tasks(loop)
            for task in pending:
                task.cancel()
            if pending:
                try:
                    loop.run_until_complete(
                        asyncio.wait_for(
                            asyncio.gather(*pending, return_exceptions=True),
                            timeout=cancel_timeout,
                        )
                    )
                except TimeoutError:
                    logger.warning("取消任务超时，仍有 {} 个任务未完成", len(pending))
            loop.run_until_complete(loop.shutdown_asyncgens())
            try:
                loop.run_until_complete(
                    asyncio.wait_for(loop.shutdown_default_executor(), timeout=cancel_timeout)
                )
            except TimeoutError:
                logger.warning("关闭默认执行器超时，可能仍有后台线程")
        finally:
            loop.close()


def run_doctor(config: ForwarderConfig) -> int:
    """
    运行环境诊断

    检查项目:
    1. Python 版本
    2. systemd-python 是否安装
    3. journal 能否打开
    4. GELF 端点能否解析

    Returns:
        0 表示全部通过，非 0 表示有问题
    """
    issues = []

    logger.info("检查 Python 版本")
    py_version = sys.version_info
    if py_version >= (3, 11):
        logger.info("OK  Python {}.{}.{}", py_version.major, py_version.minor, py_version.micro)
    else:
        issues.append(f"Python 版本过低: {py_version.major}.{py_version.minor} (需要 >= 3.11)")

    logger.info("检查 journal")
    from j2g.source.journal import JournalSource

    try:
        source = JournalSource.open(
            local_only=config.journal_local_only,
            directory=config.journal_directory,
        )
        source.close()
        logger.info("OK  journal 可读")
    except StartupError as e:
        issues.append(str(e))

    logger.info("检查 GELF 端点")
    try:
        socket.getaddrinfo(config.gelf_host, config.gelf_port, type=socket.SOCK_DGRAM)
        logger.info("OK  {}:{}", config.gelf_host, config.gelf_port)
    except OSError as e:
        issues.append(f"无法解析 GELF 端点 {config.gelf_host}:{config.gelf_port}: {e}")

    if issues:
        logger.error("诊断完成: 发现 {} 个问题", len(issues))
        for i, issue in enumerate(issues, 1):
            logger.error("{}. {}", i, issue)
        return 1

    logger.info("诊断完成: 所有检查通过")
    return 0


def print_config(config: ForwarderConfig, config_format: str = "yaml") -> None:
    """打印当前有效配置"""
    config_dict = config.to_dict()
    if config_format == "json":
        sys.stdout.write(json.dumps(config_dict, indent=2, ensure_ascii=False) + "\n")
    else:
        sys.stdout.write(yaml.dump(config_dict, allow_unicode=True, default_flow_style=False, sort_keys=False))


def _add_config_arguments(parser: argparse.ArgumentParser, default: object = None) -> None:
    """公共配置参数

    未指定的参数沿用配置文件/环境变量/默认值；子命令使用 SUPPRESS，
    避免覆盖写在子命令之前的同名参数。
    """
    parser.add_argument("--config", default=default, help="YAML 配置文件路径")
    parser.add_argument(
        "--log-level",
        default=default,
        type=str.upper,
        choices=LOG_LEVELS,
        help="日志级别 (debug, info, warning, error)，默认 info",
    )
    parser.add_argument("--gelf-host", default=default, help="GELF 端点主机，默认 127.0.0.1")
    parser.add_argument("--gelf-port", type=int, default=default, help="GELF 端点端口，默认 12201")
    parser.add_argument(
        "--gelf-connection",
        default=default,
        type=str.lower,
        choices=["wan", "lan"],
        help="GELF 连接类型 (wan, lan)，默认 wan",
    )
    parser.add_argument(
        "--gelf-max-chunk-size-wan",
        type=int,
        default=default,
        help="wan 连接的最大分片大小，默认 1420",
    )
    parser.add_argument(
        "--gelf-max-chunk-size-lan",
        type=int,
        default=default,
        help="lan 连接的最大分片大小，默认 8154",
    )
    parser.add_argument(
        "--wait-timeout",
        type=float,
        default=default,
        help="单次等待 journal 变化的超时（秒），默认 1.0",
    )
    parser.add_argument("--journal-directory", default=default, help="读取指定目录下的 journal")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="j2g",
        description=f"j2g v{__version__} - journald forwarder to gelf endpoint",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
使用方式:
  启动转发:   j2g run --gelf-host graylog.local --gelf-connection lan
  环境诊断:   j2g doctor
  查看配置:   j2g print-config --format json

优雅关闭:
  收到 SIGTERM 或 SIGINT 信号时，转发器会:
  1. 不再等待新日志
  2. 等待进行中的 journal 等待返回（最长一个 --wait-timeout）
  3. 关闭 journal 与 UDP 端点后退出
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    _add_config_arguments(parser)

    subparsers = parser.add_subparsers(dest="command", help="可用命令")

    run_parser = subparsers.add_parser("run", help="启动转发器（默认命令）")
    _add_config_arguments(run_parser, default=argparse.SUPPRESS)

    doctor_parser = subparsers.add_parser("doctor", help="运行环境诊断")
    _add_config_arguments(doctor_parser, default=argparse.SUPPRESS)

    config_parser = subparsers.add_parser("print-config", help="打印当前配置")
    _add_config_arguments(config_parser, default=argparse.SUPPRESS)
    config_parser.add_argument(
        "--format",
        default="yaml",
        choices=["yaml", "json"],
        help="输出格式 (yaml/json)",
    )

    return parser


def main(argv: list[str] | None = None) -> None:
    """主入口"""
    args = build_parser().parse_args(argv)

    setup_logging(args.log_level or "INFO")
    try:
        config = init_forwarder_config(args.config, **_config_overrides(args))
    except ConfigError as e:
        logger.error("配置无效: {}", e)
        sys.exit(1)
    setup_logging(config.log_level)

    if args.command == "print-config":
        print_config(config, config_format=args.format)
        return

    if args.command == "doctor":
        sys.exit(run_doctor(config))

    sys.exit(start_forwarder(config))


if __name__ == "__main__":
    main()
