import json
import logging
import sys

from tuning_lab.core.config import settings

# 通过 extra={...} 传进来、原样写进日志行的字段
EXTRA_FIELDS = ("trace_id", "client_key", "outcome", "elapsed_ms", "sql_length")


class JSONFormatter(logging.Formatter):
    """一行一个 JSON 对象，SQL 原文不进日志，只记长度。"""

    def format(self, record):
        entry = {
            "time": self.formatTime(record),
            "level": record.levelname,
            "message": record.getMessage(),
            "module": record.module,
            "func": record.funcName,
        }
        for field in EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                entry[field] = getattr(value, "value", value)

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False)


def setup_logger(name: str = "tuning_lab", level: str = settings.LOG_LEVEL) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # 避免重复添加 handler
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)

    return logger


# 全局单例
logger = setup_logger()
