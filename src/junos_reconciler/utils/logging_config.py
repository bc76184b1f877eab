"""Log setup and perf timing.

Two rotating files are written next to each other: the main log, which
captures every ``junos_reconciler.*`` record at DEBUG, and a perf log that
only receives device round trip and transaction timings. A console
handler can be added on top at the configured level.

Environment:
    JUNOS_RECONCILER_LOG_LEVEL: console level (default: INFO)
    JUNOS_RECONCILER_LOG_FILE: main log path
        (default: ~/.junos-reconciler/junos-reconciler.log)
    JUNOS_RECONCILER_LOG_MAX_SIZE: rotation size in MB (default: 10)
    JUNOS_RECONCILER_LOG_BACKUPS: rotated files kept (default: 5)

Timing:
    @timed("commit")
    async def commit_conf(self, label):
        ...

    async with timed_section("create", device_id="mx-core", resource="junos_bgp_group"):
        ...
"""
import asyncio
import functools
import logging
import os
import time
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Callable, Any

main_logger = logging.getLogger("junos_reconciler")
# Child of main_logger, so timings land in both files
perf_logger = logging.getLogger("junos_reconciler.perf")

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
MAIN_FORMAT = "%(asctime)s.%(msecs)03d | %(name)-32s | %(levelname)-7s | %(message)s"
PERF_FORMAT = "%(asctime)s.%(msecs)03d | PERF | %(message)s"
PERF_LOG_NAME = "junos-reconciler-perf.log"


def get_log_level() -> int:
    """Console level from JUNOS_RECONCILER_LOG_LEVEL, INFO if unknown."""
    name = os.environ.get("JUNOS_RECONCILER_LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def get_log_file() -> Path:
    """Main log path from JUNOS_RECONCILER_LOG_FILE."""
    configured = os.environ.get("JUNOS_RECONCILER_LOG_FILE")
    if configured:
        return Path(configured)
    return Path.home() / ".junos-reconciler" / "junos-reconciler.log"


def _rotating_handler(path: Path, fmt: str) -> RotatingFileHandler:
    max_mb = int(os.environ.get("JUNOS_RECONCILER_LOG_MAX_SIZE", "10"))
    backups = int(os.environ.get("JUNOS_RECONCILER_LOG_BACKUPS", "5"))
    handler = RotatingFileHandler(
        path, maxBytes=max_mb * 1024 * 1024, backupCount=backups, encoding="utf-8"
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(fmt, datefmt=DATE_FORMAT))
    return handler


def setup_logging(console: bool = True) -> None:
    """Install the file handlers, and a console handler if asked.

    Safe to call more than once: existing handlers are replaced.
    """
    level = get_log_level()
    log_file = get_log_file()
    log_file.parent.mkdir(parents=True, exist_ok=True)
    perf_file = log_file.parent / PERF_LOG_NAME

    main_logger.handlers.clear()
    main_logger.setLevel(logging.DEBUG)
    main_logger.addHandler(_rotating_handler(log_file, MAIN_FORMAT))

    perf_logger.handlers.clear()
    perf_logger.setLevel(logging.DEBUG)
    perf_logger.addHandler(_rotating_handler(perf_file, PERF_FORMAT))

    if console:
        stream = logging.StreamHandler()
        stream.setLevel(level)
        stream.setFormatter(logging.Formatter(MAIN_FORMAT, datefmt=DATE_FORMAT))
        main_logger.addHandler(stream)

    main_logger.info(f"Logging initialized: level={logging.getLevelName(level)}, file={log_file}")
    perf_logger.info(f"Performance logging to: {perf_file}")


class _Stopwatch:
    """Measures one operation and reports it to the perf log."""

    def __init__(self, operation: str, device_id: Optional[str], extra: dict):
        self.operation = operation
        self.device_id = device_id
        self.extra = extra
        self.start = time.perf_counter()

    def _line(self, status: str) -> str:
        elapsed_ms = (time.perf_counter() - self.start) * 1000
        line = f"{self.operation:20s} | {self.device_id or 'N/A':15s} | {elapsed_ms:8.2f}ms | {status}"
        if self.extra:
            line += " | " + " | ".join(f"{k}={v}" for k, v in self.extra.items())
        return line

    def ok(self) -> None:
        perf_logger.info(self._line("OK"))

    def failed(self, error: BaseException) -> None:
        perf_logger.warning(self._line(f"FAIL: {error}"))


def _device_of(args: tuple, device_id: Optional[str]) -> Optional[str]:
    if device_id is None and args:
        return getattr(args[0], "device_id", None)
    return device_id


def timed(operation: str, device_id: Optional[str] = None):
    """Decorator logging the duration of a sync or async call.

    Without ``device_id`` the ``device_id`` attribute of the bound
    instance is used, so session methods need no argument.
    """
    def decorator(func: Callable) -> Callable:
        if asyncio.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs) -> Any:
                watch = _Stopwatch(operation, _device_of(args, device_id), {})
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    watch.failed(e)
                    raise
                watch.ok()
                return result
            return async_wrapper

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs) -> Any:
            watch = _Stopwatch(operation, _device_of(args, device_id), {})
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                watch.failed(e)
                raise
            watch.ok()
            return result
        return sync_wrapper

    return decorator


@asynccontextmanager
async def timed_section(operation: str, device_id: Optional[str] = None, **extra):
    """Time the body of an ``async with`` block; ``extra`` is appended as key=value."""
    watch = _Stopwatch(operation, device_id, extra)
    try:
        yield
    except Exception as e:
        watch.failed(e)
        raise
    watch.ok()
