import logging
import os
import sys
import threading
from typing import Any

import structlog
from rich.console import Console
from rich.markup import escape

# Shared console for command output (stdout); log events go to stderr
console = Console()

MASK = '*****'

_secrets: set[str] = set()
_secrets_lock = threading.Lock()


def register_secret(value: str | None) -> None:
    """
    Mask `value` in every log event emitted from now on.
    Registration is process-wide and cannot be undone.
    """
    if not value:
        return
    with _secrets_lock:
        _secrets.add(value)


def mask(text: str) -> str:
    """Replace all registered secrets in `text`."""
    # Longest first so a secret containing another one is masked whole
    for secret in sorted(_secrets, key=len, reverse=True):
        text = text.replace(secret, MASK)
    return text


def mask_secrets_processor(logger, method_name, event_dict):
    """Replace registered secrets in the event and all string values."""
    if not _secrets:
        return event_dict
    for key, value in event_dict.items():
        if isinstance(value, str):
            event_dict[key] = mask(value)
        elif isinstance(value, BaseException):
            event_dict[key] = mask(str(value))
        elif isinstance(value, (list, tuple)):
            event_dict[key] = [mask(v) if isinstance(v, str) else v for v in value]
    return event_dict


def drop_style_processor(logger, method_name, event_dict):
    """Keep the console-only `_style` hint out of JSON output."""
    event_dict.pop('_style', None)
    return event_dict


class BuildLogRenderer:
    """
    Renders an event as a single build-log line through rich:
    `<time> <LEVEL> <logger> <event> key=value ...`.

    An `_style` entry in the event overrides the line style.
    """

    LEVEL_STYLES = {
        'debug': 'dim',
        'info': 'green',
        'warning': 'yellow',
        'error': 'bold red',
        'critical': 'bold magenta',
    }

    def __init__(self, stream=None):
        self._console = Console(file=stream, stderr=stream is None)

    @staticmethod
    def _format_value(value: Any) -> str:
        if isinstance(value, str):
            return value if value and ' ' not in value else repr(value)
        return repr(value)

    def __call__(self, logger, name, event_dict):
        style = event_dict.pop('_style', None)
        level = event_dict.pop('level', 'info')
        timestamp = event_dict.pop('timestamp', '')
        logger_name = event_dict.pop('logger', '')
        event = event_dict.pop('event', '')
        trailer = event_dict.pop('exception', None) or event_dict.pop('stack', None)
        event_dict.pop('exc_info', None)

        level_style = self.LEVEL_STYLES.get(level, 'white')
        line = [f"[{level_style}]{level.upper():<7}[/{level_style}]"]
        if timestamp:
            line.insert(0, f"[dim]{timestamp}[/dim]")
        if logger_name:
            line.append(f"[bold]{logger_name}[/bold]")
        line.append(escape(str(event)))
        line.extend(
            f"[cyan]{key}[/cyan]={escape(self._format_value(value))}"
            for key, value in event_dict.items()
        )

        # No wrapping: CI log parsers expect one event per line
        self._console.print(' '.join(line), style=style, soft_wrap=True, highlight=False)
        if trailer:
            self._console.print(escape(str(trailer)), style='red', soft_wrap=True, highlight=False)

        # Already printed; nothing left for the stdlib handler
        raise structlog.DropEvent


def setup_logging(level: str = 'INFO') -> None:
    """
    Configure structlog for the whole process.

    Development output goes through `BuildLogRenderer`; with
    `ENV=production` events are emitted as JSON lines. Registered secrets are
    masked in both.
    """
    logging.basicConfig(format='%(message)s', stream=sys.stderr, level=level)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt='%H:%M:%S' if os.getenv('ENV') != 'production' else 'iso'),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        mask_secrets_processor,
    ]

    if os.getenv('ENV') == 'production':
        processors += [drop_style_processor, structlog.processors.JSONRenderer()]
    else:
        processors.append(BuildLogRenderer())

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
