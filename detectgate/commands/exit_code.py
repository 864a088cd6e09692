import typer
from rich.table import Table

from detectgate.core.exit_codes import classify
from detectgate.core.exit_codes import DETECT_EXIT_CODES
from detectgate.core.exit_codes import ExitCodeClassification
from detectgate.core.logging import console


def main(
    code: int | None = typer.Argument(None, help='Detect exit code to explain'),
    show_all: bool = typer.Option(False, '--all', help='List every known exit code'),
):
    """
    Explain a Detect exit code.
    """
    if show_all or code is None:
        table = Table(title='Detect exit codes')
        table.add_column('Code', justify='right')
        table.add_column('Category')
        table.add_column('Error category')
        table.add_column('Description')
        for key, entry in sorted(DETECT_EXIT_CODES.items()):
            classification = ExitCodeClassification(entry.category, entry.description)
            table.add_row(str(key), entry.category, classification.error_category, entry.description)
        console.print(table)
        return

    classification = classify(code)
    style = 'green' if classification.succeeded else 'red'
    console.print(f"[bold {style}]{classification.category}[/] ({classification.error_category})")
    console.print(classification.message, highlight=False)
