from pathlib import Path

import dotenv
import structlog
import typer

from detectgate.commands.scan import render_report
from detectgate.commands.scan import split_values
from detectgate.core.config import DetectConfig
from detectgate.core.container import get_container
from detectgate.core.decorators import handle_errors
from detectgate.core.exit_codes import classify
from detectgate.core.logging import console
from detectgate.core.storage import load_assessments
from detectgate.services.detect_service import decide_outcome

logger = structlog.get_logger('reconcile_command')

dotenv.load_dotenv()


@handle_errors
def main(
    server_url: str = typer.Option(..., '--server-url', envvar='BLACKDUCK_URL', help='Black Duck server URL'),
    token: str = typer.Option(..., '--token', envvar='BLACKDUCK_TOKEN', help='Black Duck API token'),
    project_name: str = typer.Option(..., '--project-name', help='Black Duck project name'),
    version: str = typer.Option('', '--version', help='Full version of the scanned artifact'),
    versioning_model: str = typer.Option('major', '--versioning-model'),
    custom_scan_version: str = typer.Option('', '--custom-scan-version'),
    fail_on: list[str] | None = typer.Option(None, '--fail-on', help='Use NONE to only report violations'),
    assessment_file: Path | None = typer.Option(None, '--assessment-file', help='Risk-acceptance YAML'),
):
    """
    Reconcile an existing Black Duck project version without scanning.
    """
    container = get_container()
    config = DetectConfig(
        server_url=server_url,
        token=token,
        project_name=project_name,
        version=version,
        versioning_model=versioning_model,
        custom_scan_version=custom_scan_version,
        fail_on=split_values(fail_on) or ['BLOCKER'],
    )

    assessments = load_assessments(assessment_file or container.config.paths.assessment_file)
    backend = container.create_blackduck_service(config)
    service = container.create_detect_service()

    report, result = service.post_scan_checks_and_reporting(config, backend, assessments)
    render_report(report)

    error = decide_outcome(classify(0), result.policy_violations, config)
    if error is not None:
        raise error
    logger.debug('Reconciliation passed', project=project_name, version=config.version_name)
    console.print('[bold green]No active license policy violations.[/]')
