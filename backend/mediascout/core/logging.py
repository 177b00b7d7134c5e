"""MediaScout 日志模块

提供带有 `request_id`、`run_id`、`source_url` 的结构化日志。

- 使用 loguru。
- 通过 contextvars 注入上下文，使现有的 `logger.info(...)` 调用自动带上这些 ID。
"""

from __future__ import annotations

import os
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

from loguru import logger as _base_logger


_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
_run_id: ContextVar[Optional[str]] = ContextVar("run_id", default=None)
_source_url: ContextVar[Optional[str]] = ContextVar("source_url", default=None)


def _patch_record(record: dict) -> dict:
    record_extra = record.get("extra")
    if record_extra is None:
        record_extra = {}
        record["extra"] = record_extra

    record_extra.setdefault("request_id", _request_id.get())
    record_extra.setdefault("run_id", _run_id.get())
    record_extra.setdefault("source_url", _source_url.get())
    return record


logger = _base_logger.patch(_patch_record)


def new_request_id() -> str:
    return uuid.uuid4().hex


def new_run_id() -> str:
    return uuid.uuid4().hex


@contextmanager
def log_context(
    *,
    request_id: Optional[str] = None,
    run_id: Optional[str] = None,
    source_url: Optional[str] = None,
) -> Iterator[None]:
    tokens = []
    if request_id is not None:
        tokens.append((_request_id, _request_id.set(request_id)))
    if run_id is not None:
        tokens.append((_run_id, _run_id.set(run_id)))
    if source_url is not None:
        tokens.append((_source_url, _source_url.set(source_url)))

    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


def setup_logging(
    *,
    level: str = "INFO",
    fmt: str = "text",
    debug: bool = False,
    log_dir: Optional[str] = "logs",
) -> None:
    """设置日志配置

    参数:
        level: 日志级别。
        fmt: 'json' 或 'text'。
        debug: 是否启用 loguru 的 backtrace/diagnose。
        log_dir: 日志文件目录，为空时只输出到终端。
    """
    logger.remove()

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    if fmt.lower() == "json":
        logger.add(
            sys.stdout,
            level=level.upper(),
            serialize=True,
            backtrace=debug,
            diagnose=debug,
        )
        if log_dir:
            logger.add(
                os.path.join(log_dir, "mediascout.json.log"),
                level=level.upper(),
                serialize=True,
                rotation="10 MB",
                retention="7 days",
                compression="zip",
                backtrace=debug,
                diagnose=debug,
            )
        return

    # text format - 简洁模式：仅在有ID时显示
    def format_message(record):
        parts = ["{time:YYYY-MM-DD HH:mm:ss}", "|", "{level:<8}", "|"]

        ids = []
        if record["extra"].get("request_id"):
            ids.append(f"req={record['extra']['request_id'][:8]}")
        if record["extra"].get("run_id"):
            ids.append(f"run={record['extra']['run_id'][:8]}")

        if ids:
            parts.append(" " + " | ".join(ids) + " -")

        parts.append(" {name}:{function} -")
        parts.append(" {message}")
        return "".join(parts) + "\n{exception}"

    logger.add(
        sys.stdout,
        level=level.upper(),
        format=format_message,
        backtrace=debug,
        diagnose=debug,
    )
    if log_dir:
        logger.add(
            os.path.join(log_dir, "mediascout.log"),
            level=level.upper(),
            format=format_message,
            rotation="10 MB",
            retention="7 days",
            compression="zip",
            backtrace=debug,
            diagnose=debug,
        )
