import functools
from collections.abc import Callable
from typing import Any

import structlog
import typer

from detectgate.core.errors import DetectGateError
from detectgate.core.errors import ScannerExecutionFailure
from detectgate.core.logging import console
from detectgate.core.logging import mask

logger = structlog.get_logger('cli')


def _fail(title: str, error: BaseException, exit_code: int = 1) -> typer.Exit:
    console.print(f"[bold red]{title}:[/] {mask(str(error))}", highlight=False)
    return typer.Exit(exit_code)


def _describe(error: DetectGateError) -> str:
    if isinstance(error, ScannerExecutionFailure) and error.exit_code is not None:
        return f"Build failed ({error.error_category}, Detect exit code {error.exit_code})"
    return f"Build failed ({error.error_category})"


def handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """
    Turn detectgate errors raised by a command into a failed build.

    Every failure prints a single masked line and exits 1, so CI sees a
    red step without a Python traceback. Ctrl-C exits 130.
    """
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except typer.Exit:
            raise
        except DetectGateError as e:
            logger.debug('Command failed', error_category=e.error_category, exc_info=True)
            raise _fail(_describe(e), e) from e
        except ValueError as e:
            logger.debug('Invalid input', exc_info=True)
            raise _fail('Invalid input', e) from e
        except KeyboardInterrupt:
            console.print('\n[yellow]Interrupted, Detect run abandoned.[/]')
            raise typer.Exit(130)
        except Exception as e:
            logger.exception('Unexpected error')
            raise _fail('Unexpected error', e) from e
    return wrapper
