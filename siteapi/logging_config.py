import contextvars
import json
import logging
import logging.config
import os
from datetime import datetime, timezone
from typing import Optional

import yaml

from .config import HTTP_LOG_EXCLUDE_PATHS, HTTP_LOG_SAMPLE_RATE, LOG_FORMAT, LOG_LEVEL

# Context variable for trace ID
trace_id_var = contextvars.ContextVar('trace_id', default=None)

# Read by TracingMiddleware
http_log_config = {
    "exclude_paths": set(HTTP_LOG_EXCLUDE_PATHS),
    "sample_rate": HTTP_LOG_SAMPLE_RATE,
}

_STANDARD_ATTRS = {
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename', 'module',
    'lineno', 'funcName', 'created', 'msecs', 'relativeCreated', 'thread', 'threadName',
    'processName', 'process', 'taskName', 'getMessage', 'exc_info', 'exc_text', 'stack_info',
    'message', 'asctime',
}
_REQUEST_ATTRS = ('method', 'path', 'status', 'latency_ms', 'client_ip', 'organization_id', 'api_key_id')


def get_trace_id() -> Optional[str]:
    """Get the current trace ID from context"""
    return trace_id_var.get()


class JsonFormatter(logging.Formatter):
    """JSON lines with request-scoped fields"""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "trace_id": get_trace_id(),
            "component": getattr(record, 'component', 'api'),
        }
        for attr in _REQUEST_ATTRS:
            value = getattr(record, attr, None)
            if value is not None:
                log_entry[attr] = value

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        # Anything else passed through extra=
        for key, value in record.__dict__.items():
            if key in _STANDARD_ATTRS or key in log_entry or key == 'component':
                continue
            log_entry[key] = value

        return json.dumps(log_entry, default=str)


def _default_config(log_format: str, log_level: str) -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {"()": JsonFormatter},
            "text": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S"
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": log_level,
                "formatter": log_format,
                "stream": "ext://sys.stdout"
            }
        },
        "loggers": {
            "siteapi": {"level": log_level, "handlers": ["console"], "propagate": False},
            "uvicorn": {"level": log_level, "handlers": ["console"], "propagate": False},
            "uvicorn.error": {"level": log_level, "handlers": ["console"], "propagate": False},
            "uvicorn.access": {"level": log_level, "handlers": ["console"], "propagate": False},
        },
        "root": {"level": log_level, "handlers": ["console"]}
    }


def setup_logging(config_path: str = "LOGGING.yaml") -> dict:
    """Setup logging configuration from YAML file or environment"""
    log_format = os.getenv("LOG_FORMAT", LOG_FORMAT)
    log_level = os.getenv("LOG_LEVEL", LOG_LEVEL).upper()

    config = None
    if os.path.exists(config_path):
        try:
            with open(config_path, 'r') as f:
                config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logging.getLogger("siteapi").warning("Could not load %s: %s", config_path, e)

    if not config:
        config = _default_config("text" if log_format == "text" else "json", log_level)
    else:
        for logger in config.get("loggers", {}).values():
            logger["level"] = log_level

    logging.config.dictConfig(config)
    return config
