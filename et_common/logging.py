"""Logging setup for etrace.

Records go to stderr (and optionally a file) because stdout carries results.
structlog renders both stdlib records and structlog events; anything logged
inside :func:`bind_trial` carries the ``trial`` and ``command`` keys.
"""

from __future__ import annotations

import logging
import os
import sys
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Sequence

import structlog

from et_common.config.env import parse_bool_env

LOG_LEVEL_ENV = "ETRACE_LOG_LEVEL"
LOG_JSON_ENV = "ETRACE_LOG_JSON"
LOG_FILE_ENV = "ETRACE_LOG_FILE"

_SHARED_PROCESSORS: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
]


def _parse_level(value: str | int | None) -> int:
    if value is None:
        return logging.INFO
    if isinstance(value, int):
        return value
    if value.strip().isdigit():
        return int(value)
    return logging.getLevelNamesMapping().get(value.strip().upper(), logging.INFO)


@dataclass(frozen=True)
class LogSettings:
    """Resolved logging options; explicit arguments win over ETRACE_LOG_*."""

    level: int
    json: bool
    log_file: str | None

    @classmethod
    def resolve(
        cls,
        *,
        level: str | int | None = None,
        debug: bool = False,
        log_file: str | None = None,
        json: bool | None = None,
    ) -> "LogSettings":
        env_json = parse_bool_env(os.environ.get(LOG_JSON_ENV))
        return cls(
            level=logging.DEBUG if debug else _parse_level(level or os.environ.get(LOG_LEVEL_ENV)),
            json=bool(env_json if json is None else json),
            log_file=log_file if log_file is not None else os.environ.get(LOG_FILE_ENV),
        )


def _handlers(settings: LogSettings) -> list[logging.Handler]:
    renderer: structlog.types.Processor
    if settings.json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()
    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer, foreign_pre_chain=_SHARED_PROCESSORS
    )
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if settings.log_file:
        handlers.append(logging.FileHandler(settings.log_file))
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def configure_logging(
    *,
    level: str | int | None = None,
    debug: bool = False,
    log_file: str | None = None,
    json: bool | None = None,
    force: bool = False,
) -> LogSettings:
    """Route stdlib logging and structlog through one stderr formatter.

    Existing root handlers are kept unless ``force`` is set.
    """
    settings = LogSettings.resolve(level=level, debug=debug, log_file=log_file, json=json)
    root = logging.getLogger()
    if force or not root.handlers:
        root.handlers.clear()
        for handler in _handlers(settings):
            root.addHandler(handler)
        root.setLevel(settings.level)

    structlog.configure(
        processors=[*_SHARED_PROCESSORS, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    return settings


@contextmanager
def bind_trial(trial: int, command: Sequence[str]) -> Iterator[None]:
    """Tag every record logged in this block with the trial and its command."""
    with structlog.contextvars.bound_contextvars(trial=trial, command=" ".join(command)):
        yield


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
