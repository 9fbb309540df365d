"""구조화 JSON 로거 팩토리.

Structured JSON logger factory.
Every module obtains its logger through ``get_logger`` so that stdout output
shares one JSON line format and the level configured by ``LOG_LEVEL``.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any


class JSONFormatter(logging.Formatter):
    """로그 레코드를 한 줄 JSON으로 직렬화합니다."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        # extra={"event": {...}} 로 전달된 구조화 필드 (Structured payload)
        event = getattr(record, "event", None)
        if isinstance(event, dict):
            log_obj.update(event)
        if record.exc_info and record.exc_info[1]:
            log_obj["exception"] = str(record.exc_info[1])
        return json.dumps(log_obj, default=str)


def get_logger(name: str = "app") -> logging.Logger:
    """이름별 JSON 로거를 반환합니다 (핸들러는 최초 1회만 설치).

    Return a logger writing JSON lines to stdout.
    """
    from app.config import settings

    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter())
        logger.handlers = [handler]
        logger.setLevel(settings.LOG_LEVEL)
        logger.propagate = False
    return logger
