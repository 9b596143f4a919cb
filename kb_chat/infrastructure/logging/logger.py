import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from kb_chat.config.settings import settings


class JsonFormatter(logging.Formatter):
    def __init__(self, redact: bool = False):
        super().__init__()
        self._redact = redact

    def format(self, record: logging.LogRecord) -> str:
        msg = record.getMessage()
        if self._redact:
            msg = (msg or "")[:64]
        payload = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "name": record.name,
            "msg": msg,
        }
        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            payload.update(extra)
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logger() -> logging.Logger:
    logger = logging.getLogger("kb_chat")
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logger.setLevel(level)
    if logger.handlers:
        return logger
    log_dir = Path(settings.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    fh = logging.FileHandler(log_dir / "kb_chat.log", encoding="utf-8")
    fh.setLevel(level)
    fh.setFormatter(JsonFormatter(redact=settings.log_redact_content))
    logger.addHandler(fh)
    return logger


logger = setup_logger()
