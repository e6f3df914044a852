from __future__ import annotations

import multiprocessing
import os


def _env_int(key: str, default: int) -> int:
    """Parse integer environment values with sane fallbacks."""
    try:
        return int(os.environ.get(key, default))
    except (TypeError, ValueError):
        return default


def _configured_workers() -> int:
    cpu_count = max(multiprocessing.cpu_count(), 1)
    auto_workers = max(2, min(8, cpu_count * 2))

    if "GUNICORN_WORKERS" in os.environ:
        return _env_int("GUNICORN_WORKERS", auto_workers)
    if "WEB_CONCURRENCY" in os.environ:
        return _env_int("WEB_CONCURRENCY", auto_workers)
    return auto_workers


# Server socket
bind = f"0.0.0.0:{os.environ.get('PORT', 5000)}"
backlog = _env_int("GUNICORN_BACKLOG", 2048)

# Worker processes; request handling is blocking database work
worker_class = os.environ.get("GUNICORN_WORKER_CLASS", "gthread")
workers = _configured_workers()
threads = _env_int("GUNICORN_THREADS", 4)

# Timeouts and keepalive
timeout = _env_int("GUNICORN_TIMEOUT", 60)
keepalive = _env_int("GUNICORN_KEEPALIVE", 5)

# Resource limits
max_requests = _env_int("GUNICORN_MAX_REQUESTS", 2000)
max_requests_jitter = _env_int("GUNICORN_MAX_REQUESTS_JITTER", 100)

preload_app = True

# Logging
access_log_format = '%(h)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'
errorlog = "-"
accesslog = "-"
loglevel = os.environ.get("GUNICORN_LOG_LEVEL", "info")

proc_name = "plato"

# Security
limit_request_line = 8192
limit_request_fields = 100
