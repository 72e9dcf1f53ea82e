"""
日志配置模块

支持 text 和 JSON 两种格式。状态机实例通过 ModelLoggerAdapter 记录日志，
每条记录携带 model_id，由格式化器负责输出。
"""
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from config.settings import settings


class JSONFormatter(logging.Formatter):
    """JSON 格式日志格式化器"""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        model_id = getattr(record, "model_id", None)
        if model_id is not None:
            log_obj["model_id"] = model_id

        if hasattr(record, "extra_data"):
            log_obj.update(record.extra_data)

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    """文本格式日志格式化器，有 model_id 时在消息前加 [id]"""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(model_tag)s%(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        model_id = getattr(record, "model_id", None)
        record.model_tag = f"[{model_id}] " if model_id is not None else ""
        return super().format(record)


def setup_logging(
    level: Optional[str] = None,
    format_type: Optional[str] = None,
    log_file: Optional[str] = None,
) -> None:
    """
    配置根 logger，参数缺省时取全局配置

    Args:
        level: 日志级别 (DEBUG, INFO, WARNING, ERROR)
        format_type: 日志格式 (text, json)
        log_file: 日志文件路径 (可选)
    """
    log_level = getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)
    formatter: logging.Formatter = (
        JSONFormatter() if (format_type or settings.LOG_FORMAT) == "json" else TextFormatter()
    )

    handlers: list = [logging.StreamHandler(sys.stdout)]
    file_path = log_file or settings.LOG_FILE
    if file_path:
        handlers.append(logging.FileHandler(str(file_path), encoding="utf-8"))

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    for handler in handlers:
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)


class ModelLoggerAdapter(logging.LoggerAdapter):
    """为日志记录附加模型实例 id，并按实例日志级别过滤"""

    def __init__(self, logger: logging.Logger, model_id: str, level: int = logging.NOTSET):
        super().__init__(logger, {"model_id": model_id})
        self.min_level = level

    def isEnabledFor(self, level: int) -> bool:
        return level >= self.min_level and self.logger.isEnabledFor(level)

    def process(self, msg, kwargs):
        kwargs["extra"] = {**kwargs.get("extra", {}), **self.extra}
        return msg, kwargs
