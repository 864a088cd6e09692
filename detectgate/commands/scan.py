from pathlib import Path

import dotenv
import structlog
import typer
from rich.table import Table

from detectgate.core.config import DetectConfig
from detectgate.core.container import get_container
from detectgate.core.decorators import handle_errors
from detectgate.core.errors import DetectGateError
from detectgate.core.logging import console
from detectgate.core.storage import load_assessments
from detectgate.models.report import DetectReport

logger = structlog.get_logger('scan_command')

dotenv.load_dotenv()

SEVERITY_STYLES = {
    'CRITICAL': 'bold magenta',
    'HIGH': 'bold red',
    'MEDIUM': 'yellow',
    'LOW': 'green',
}


def render_report(report: DetectReport) -> None:
    """Print the active vulnerabilities and a one-line verdict."""
    table = Table(title=f"{report.project_name} {report.version_name}".strip() or 'Vulnerabilities')
    table.add_column('Vulnerability')
    table.add_column('Component')
    table.add_column('Severity')
    table.add_column('Score', justify='right')
    table.add_column('Remediation')

    for v in report.unassessed_vulnerabilities.items:
        severity = str(v.severity)
        style = SEVERITY_STYLES.get(severity, 'dim')
        table.add_row(
            v.name,
            f"{v.component_name} {v.component_version}",
            f"[{style}]{severity}[/{style}]",
            f"{v.overall_score:.1f}",
            v.remediation_status,
        )

    if report.unassessed_vulnerabilities.items:
        console.print(table)

    stats = report.statistics
    console.print(
        f"Active vulnerabilities: [bold]{stats.get('vulnerabilities', 0)}[/] "
        f"(major {stats.get('major_vulnerabilities', 0)}, minor {stats.get('minor_vulnerabilities', 0)}), "
        f"assessed: {report.assessed_vulnerabilities.total_count}, "
        f"policy violations: [bold]{report.policy_violations}[/]",
    )
    for unresolved in report.unresolved_purls:
        console.print(
            f"[yellow]Assessment for {unresolved.vulnerability} did not apply:[/] "
            f"{unresolved.purl} ({unresolved.reason})",
        )


def split_values(values: list[str] | None) -> list[str]:
    """Allow both repeated options and comma separated lists."""
    return [part.strip() for value in values or [] for part in value.split(',') if part.strip()]


@handle_errors
def main(
    server_url: str = typer.Option(..., '--server-url', envvar='BLACKDUCK_URL', help='Black Duck server URL'),
    token: str = typer.Option(..., '--token', envvar='BLACKDUCK_TOKEN', help='Black Duck API token'),
    project_name: str = typer.Option(..., '--project-name', help='Black Duck project name'),
    version: str = typer.Option('', '--version', help='Full version of the scanned artifact'),
    versioning_model: str = typer.Option(
        'major', '--versioning-model', help='major, major-minor, semantic or full',
    ),
    custom_scan_version: str = typer.Option('', '--custom-scan-version', help='Use this version name as is'),
    code_location: str = typer.Option('', '--code-location', help='Code location name'),
    groups: list[str] | None = typer.Option(None, '--group', help='Project user groups'),
    fail_on: list[str] | None = typer.Option(
        None, '--fail-on', help='Policy severities failing the scan (BLOCKER, CRITICAL, MAJOR, ... or NONE)',
    ),
    fail_on_severe_vulnerabilities: bool = typer.Option(
        False, '--fail-on-severe-vulnerabilities', help='Policy violations win over other scan failures',
    ),
    scan_paths: list[str] | None = typer.Option(None, '--scan-path', help='Signature scanner paths'),
    scan_properties: list[str] | None = typer.Option(None, '--scan-property', help='Extra Detect properties'),
    dependency_path: str = typer.Option('', '--dependency-path', help='Detect source path'),
    unmap: bool = typer.Option(False, '--unmap', help='Unmap code locations before scanning'),
    scan_on_changes: bool = typer.Option(False, '--scan-on-changes', help='Use the Detect rescan script'),
    min_scan_interval: int = typer.Option(0, '--min-scan-interval', help='Signature scanner minimum interval'),
    included_package_managers: list[str] | None = typer.Option(None, '--include-package-manager'),
    excluded_package_managers: list[str] | None = typer.Option(None, '--exclude-package-manager'),
    maven_excluded_scopes: list[str] | None = typer.Option(None, '--maven-excluded-scope'),
    detect_tools: list[str] | None = typer.Option(None, '--detect-tool'),
    m2_path: str = typer.Option('', '--m2-path', help='Local Maven repository'),
    project_settings_file: str = typer.Option('', '--project-settings-file'),
    global_settings_file: str = typer.Option('', '--global-settings-file'),
    env: list[str] | None = typer.Option(None, '--env', help='KEY=value passed to Detect'),
    detect_version: str = typer.Option('', '--detect-version', envvar='DETECT_VERSION', help='Detect major version'),
    working_dir: Path = typer.Option(Path('.'), '--working-dir', help='Directory to scan from'),
    timeout: float | None = typer.Option(None, '--timeout', help='Seconds before the scan is aborted'),
    assessment_file: Path | None = typer.Option(None, '--assessment-file', help='Risk-acceptance YAML'),
):
    """
    Run a Detect scan and fail on license policy violations.
    """
    container = get_container()
    config = DetectConfig(
        server_url=server_url,
        token=token,
        project_name=project_name,
        version=version,
        versioning_model=versioning_model,
        custom_scan_version=custom_scan_version,
        code_location=code_location,
        groups=split_values(groups),
        fail_on=split_values(fail_on) or ['BLOCKER'],
        fail_on_severe_vulnerabilities=fail_on_severe_vulnerabilities,
        scan_paths=split_values(scan_paths) or ['.'],
        scan_properties=scan_properties or [],
        dependency_path=dependency_path,
        unmap=unmap,
        scan_on_changes=scan_on_changes,
        min_scan_interval=min_scan_interval,
        included_package_managers=split_values(included_package_managers),
        excluded_package_managers=split_values(excluded_package_managers),
        maven_excluded_scopes=split_values(maven_excluded_scopes),
        detect_tools=split_values(detect_tools),
        m2_path=m2_path,
        project_settings_file=project_settings_file,
        global_settings_file=global_settings_file,
        custom_environment_variables=env or [],
        detect_version=detect_version,
        working_dir=working_dir,
        scan_timeout=timeout,
    )
    logger.debug('Scan configuration', config=repr(config))

    assessments = load_assessments(assessment_file or container.config.paths.assessment_file)
    backend = container.create_blackduck_service(config)
    service = container.create_detect_service()

    try:
        report = service.run(config, backend, assessments)
    except DetectGateError as e:
        if e.report is not None:
            render_report(e.report)
        raise
    render_report(report)
    console.print('[bold green]Scan passed.[/]')
