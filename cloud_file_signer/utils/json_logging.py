import json
import logging
from typing import Any, Dict

# LogRecord attributes that are not caller-supplied extras
_RESERVED = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime", "ts"}
# extras whose values must never reach a log sink
_SECRET_MARKERS = ("secret", "account_key", "private_key", "token", "signature", "password")


def _is_secret(name: str) -> bool:
    lowered = name.lower()
    return any(marker in lowered for marker in _SECRET_MARKERS)


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        data: Dict[str, Any] = {
            "ts": getattr(record, "ts", None) or self.formatTime(record, "%Y-%m-%dT%H:%M:%S%z"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "module": record.module,
            "funcName": record.funcName,
            "lineno": record.lineno,
        }
        # include extra fields (provider, bucket, stage etc.) if provided
        for k, v in record.__dict__.items():
            if k in _RESERVED:
                continue
            if _is_secret(k):
                data[k] = "***"
                continue
            # keep only simple serializable types
            try:
                json.dumps({k: v})
                data[k] = v
            except (TypeError, ValueError):
                data[k] = str(v)
        if record.exc_info:
            data["exc"] = self.formatException(record.exc_info)
        return json.dumps(data, ensure_ascii=False)
