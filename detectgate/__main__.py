
import typer

from detectgate.__version__ import __version__
from detectgate.commands import exit_code
from detectgate.commands import reconcile
from detectgate.commands import scan
from detectgate.core.logging import setup_logging

app = typer.Typer(
    help='detectgate: gate builds on Black Duck Detect results.',
    no_args_is_help=True,
    pretty_exceptions_show_locals=False,
)

app.command(name='scan')(scan.main)
app.command(name='reconcile')(reconcile.main)
app.command(name='exit-code')(exit_code.main)


def version_callback(value: bool):
    if value:
        typer.echo(f"detectgate {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    debug: bool = typer.Option(False, '--debug', help='Enable debug logging'),
    version: bool = typer.Option(
        False, '--version', callback=version_callback, is_eager=True, help='Show version and exit',
    ),
):
    """
    detectgate CLI - run Detect, reconcile findings, fail on policy violations.
    """
    level = 'DEBUG' if debug else 'INFO'
    setup_logging(level=level)


if __name__ == '__main__':
    app()
