#!/usr/bin/env python3
"""
Development server entry point
"""
import logging
import os
import sys

from plato import create_app

app = create_app()


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "on", "yes"}


if __name__ == '__main__':
    env = app.config.get('ENV', 'development')
    debug_enabled = env != 'production' and _env_flag('FLASK_DEBUG', default=True)

    if env == 'production' and not _env_flag('ALLOW_DEV_SERVER_IN_PRODUCTION'):
        logging.basicConfig(level=logging.ERROR, stream=sys.stderr)
        logging.error(
            "Refusing to start the Flask dev server while FLASK_ENV=production. "
            "Run a WSGI server instead, e.g. `gunicorn wsgi:app`."
        )
        raise SystemExit(2)

    logging.basicConfig(
        level=logging.DEBUG if debug_enabled else logging.INFO,
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    app.run(
        host='0.0.0.0',
        port=int(os.environ.get('PORT', 5000)),
        debug=debug_enabled,
        use_reloader=debug_enabled,
    )
