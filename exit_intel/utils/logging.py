"""
Root logger setup for the exit-intel CLI and embedding services.

``configure_logging()`` is called once by whoever owns the process (the CLI
commands, or a service's startup hook). Library modules only ever create
module loggers with ``logging.getLogger(__name__)``.

Every line carries the thread name, so updates scheduled through
``DossierUpdater.trigger_dossier_update()`` (threads named
``dossier-update_N``) can be told apart from the caller's own work.

With ``[logging] json_format = true`` each record is one JSON object::

    {"ts": "...", "level": "INFO", "logger": "exit_intel.dossier.updater",
     "thread": "dossier-update_0", "msg": "Dossier updated | company=acme ..."}

Fields passed through ``extra=`` are copied to the top level of the object.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from exit_intel.config import LoggingConfig

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(threadName)s %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Keys of a bare LogRecord; anything beyond these arrived via ``extra=``.
_RECORD_KEYS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__.keys()
) | {"message", "asctime"}


class JsonLineFormatter(logging.Formatter):
    """Render a record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).strftime(
                LOG_DATE_FORMAT
            ),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        for key, val in record.__dict__.items():
            if key not in _RECORD_KEYS and not key.startswith("_"):
                payload[key] = val
        return json.dumps(payload, default=str)


def configure_logging(config: "LoggingConfig") -> None:
    """Install stdout (and optional file) handlers on the root logger.

    Replaces any handlers already installed, so calling it again (e.g. once
    per CLI command in the same interpreter) does not duplicate output.

    Args:
        config: ``[logging]`` section of ``AppConfig``. An empty
            ``log_file`` disables the file handler; its parent directory is
            created on demand.
    """
    level = getattr(logging, config.level.upper(), logging.INFO)

    formatter: logging.Formatter
    if config.json_format:
        formatter = JsonLineFormatter()
    else:
        formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=handlers, force=True)
