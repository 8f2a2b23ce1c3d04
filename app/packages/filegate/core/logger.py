"""日志配置模块：提供彩色输出、JSON 输出与请求 ID 注入能力。"""

import json
import logging
import logging.config
import sys
from contextvars import ContextVar
from datetime import datetime
from typing import Any, Optional

from .config import get_settings

_FORMATTER_PATH = "app.packages.filegate.core.logger"
_PLAIN_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s"


class _TZFormatter(logging.Formatter):
    """Formatter that renders timestamps in Settings.timezone."""

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:  # noqa: N802
        dt = datetime.fromtimestamp(record.created, get_settings().timezone_info)
        if datefmt:
            return dt.strftime(datefmt)
        return dt.isoformat(sep=" ", timespec="milliseconds")


class ColorFormatter(_TZFormatter):
    """ANSI 彩色格式化器：根据日志级别渲染不同颜色。"""

    RESET = "\033[0m"
    COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[41m",
    }

    def __init__(
        self,
        fmt: str,
        datefmt: Optional[str] = None,
        style: str = "%",
        use_colors: Optional[bool] = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)
        self.use_colors = sys.stderr.isatty() if use_colors is None else use_colors

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        color = self.COLORS.get(record.levelno) if self.use_colors else None
        return f"{color}{message}{self.RESET}" if color else message


class JsonFormatter(_TZFormatter):
    """Structured JSON formatter for log shipping."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record),
            "logger": record.name,
            "level": record.levelname,
            "msg": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


_request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


class RequestIdFilter(logging.Filter):
    """Injects request_id from contextvars into every LogRecord."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _request_id_ctx.get() or "-"
        return True


def _handler(level: str, formatter: str, **extra: Any) -> dict[str, Any]:
    return {"level": level, "formatter": formatter, "filters": ["request_id"], **extra}


def setup_logging() -> None:
    """初始化日志系统：控制台 + 按天轮转的文件输出，统一格式与级别。"""
    settings = get_settings()
    settings.log_directory.mkdir(parents=True, exist_ok=True)
    level = settings.log_level
    console_formatter = "json" if settings.log_json else "standard"
    file_formatter = "json" if settings.log_json else "plain"

    shared_handlers = ["default", "file"]
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "standard": {"()": f"{_FORMATTER_PATH}.ColorFormatter", "fmt": _PLAIN_FORMAT},
                "plain": {"()": f"{_FORMATTER_PATH}._TZFormatter", "fmt": _PLAIN_FORMAT},
                "json": {"()": f"{_FORMATTER_PATH}.JsonFormatter"},
            },
            "filters": {"request_id": {"()": f"{_FORMATTER_PATH}.RequestIdFilter"}},
            "handlers": {
                "default": _handler(level, console_formatter, **{"class": "logging.StreamHandler"}),
                "file": _handler(
                    level,
                    file_formatter,
                    **{
                        "class": "logging.handlers.TimedRotatingFileHandler",
                        "filename": str(settings.log_file_path),
                        "when": "midnight",
                        "backupCount": 14,
                        "encoding": "utf-8",
                        "delay": True,
                    },
                ),
            },
            "loggers": {
                name: {"handlers": shared_handlers, "level": level, "propagate": False}
                for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "app")
            },
            "root": {"handlers": shared_handlers, "level": level},
        }
    )


logger = logging.getLogger("app")


def set_request_id(request_id: Optional[str]) -> None:
    _request_id_ctx.set(request_id)


def get_request_id() -> Optional[str]:
    return _request_id_ctx.get()
