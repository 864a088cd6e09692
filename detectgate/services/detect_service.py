import os
import subprocess
import time
from collections.abc import Callable
from collections.abc import Iterable
from collections.abc import Mapping
from pathlib import Path
from typing import Protocol

import requests
import structlog

from detectgate.core.arguments import build_detect_args
from detectgate.core.client import get_http_client
from detectgate.core.config import DetectConfig
from detectgate.core.config import PathConfig
from detectgate.core.errors import DetectGateError
from detectgate.core.errors import PolicyViolationDetected
from detectgate.core.errors import ScannerExecutionFailure
from detectgate.core.errors import ScriptDownloadFailed
from detectgate.core.exit_codes import ExitCodeClassification
from detectgate.core.exit_codes import ExitCodeClassifier
from detectgate.core.exit_codes import FAILURE_POLICY_VIOLATION
from detectgate.core.exit_codes import FAILURE_TIMEOUT
from detectgate.core.logging import register_secret
from detectgate.models.assessment import Assessment
from detectgate.models.report import DetectReport
from detectgate.services.blackduck_service import BackendClient
from detectgate.services.reconciliation_service import ReconciliationEngine
from detectgate.services.reconciliation_service import ReconciliationResult
from detectgate.services.report_service import ReportService

logger = structlog.get_logger('detect_service')

DETECT_VERSION_ENV = 'DETECT_LATEST_RELEASE_VERSION'
DEFAULT_DETECT_VERSION = '7'
DETECT_SCRIPT_URLS = {
    '6': 'https://detect.synopsys.com/detect.sh',
    '7': 'https://detect.synopsys.com/detect7.sh',
    '8': 'https://detect.synopsys.com/detect8.sh',
}
RESCAN_SCRIPT_URL = 'https://raw.githubusercontent.com/blackducksoftware/detect_rescan/master/detect_rescan.sh'
SHELL = '/bin/bash'


class DetectUtils(Protocol):
    def download(self, url: str, destination: Path) -> None:
        ...

    def make_executable(self, path: Path) -> None:
        ...

    def run(
        self, executable: str, args: list[str], env: Mapping[str, str], cwd: Path, timeout: float | None,
    ) -> int:
        ...

    def remove(self, path: Path) -> None:
        ...


class ShellDetectUtils:
    """Downloads the Detect script and runs it in a local shell."""

    def __init__(self, session: requests.Session | None = None, timeout: float = 60.0):
        self.session = session or get_http_client()
        self.timeout = timeout

    def download(self, url: str, destination: Path) -> None:
        response = self.session.get(url, timeout=self.timeout)
        response.raise_for_status()
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(response.content)

    def make_executable(self, path: Path) -> None:
        path.chmod(0o700)

    def run(
        self, executable: str, args: list[str], env: Mapping[str, str], cwd: Path, timeout: float | None,
    ) -> int:
        # Detect output goes straight to the build log
        process = subprocess.run(
            [executable, *args], cwd=cwd, env=dict(env), timeout=timeout, check=False,
        )
        return process.returncode

    def remove(self, path: Path) -> None:
        path.unlink(missing_ok=True)


def parse_environment(entries: Iterable[str]) -> dict[str, str]:
    """Turn `KEY=value` entries into a mapping; entries without `=` are skipped."""
    env = {}
    for entry in entries:
        key, sep, value = entry.partition('=')
        if sep and key.strip():
            env[key.strip()] = value
    return env


def resolve_detect_version(config: DetectConfig, os_env: Mapping[str, str]) -> str:
    """Major Detect version: explicit option > custom environment > OS environment > default."""
    candidates = [
        config.detect_version,
        parse_environment(config.custom_environment_variables).get(DETECT_VERSION_ENV, ''),
        os_env.get(DETECT_VERSION_ENV, ''),
    ]
    for candidate in candidates:
        if candidate and candidate.strip():
            return candidate.strip().split('.')[0]
    return DEFAULT_DETECT_VERSION


def resolve_script_url(config: DetectConfig, os_env: Mapping[str, str]) -> str:
    if config.scan_on_changes:
        return RESCAN_SCRIPT_URL
    version = resolve_detect_version(config, os_env)
    url = DETECT_SCRIPT_URLS.get(version)
    if url is None:
        raise ValueError(f"Unsupported Detect version: {version}")
    return url


def fails_on_policy_violations(config: DetectConfig) -> bool:
    return not any(severity.strip().upper() == 'NONE' for severity in config.fail_on)


def decide_outcome(
    classification: ExitCodeClassification,
    policy_violations: int,
    config: DetectConfig,
    exit_code: int | None = None,
) -> DetectGateError | None:
    """
    Combine the scanner exit classification with the policy decision.

    License policy violations fail the build on their own. When Detect also
    failed for a reason other than policy violations, its classification
    wins unless the caller asked to fail on severe vulnerabilities.
    """
    violations_found = policy_violations > 0 and fails_on_policy_violations(config)
    if classification.succeeded:
        return PolicyViolationDetected(policy_violations) if violations_found else None
    if violations_found and (
        classification.category == FAILURE_POLICY_VIOLATION or config.fail_on_severe_vulnerabilities
    ):
        return PolicyViolationDetected(policy_violations)
    return ScannerExecutionFailure(classification, exit_code)


class DetectService:
    """Runs a Detect scan and reconciles its results, whatever the scan outcome."""

    def __init__(
        self,
        utils: DetectUtils | None = None,
        paths: PathConfig | None = None,
        report_service: ReportService | None = None,
        classifier: ExitCodeClassifier | None = None,
        engine_factory: Callable[[], ReconciliationEngine] = ReconciliationEngine,
    ):
        self.utils = utils or ShellDetectUtils()
        self.paths = paths or PathConfig()
        self.report_service = report_service or ReportService(self.paths)
        self.classifier = classifier or ExitCodeClassifier()
        self.engine_factory = engine_factory

    def run(
        self,
        config: DetectConfig,
        backend: BackendClient,
        assessments: Iterable[Assessment] = (),
    ) -> DetectReport:
        """
        Download and run Detect, then reconcile against Black Duck.

        Raises:
            PolicyViolationDetected, ScannerExecutionFailure per `decide_outcome`
            BackendUnavailable if Black Duck cannot be queried after the scan
            ScriptDownloadFailed if the Detect script cannot be fetched
        """
        register_secret(config.token)
        script = config.working_dir / self.paths.script_name

        try:
            self._download_script(config, script)
            self.utils.make_executable(script)
            exit_code, classification = self._execute(config, script)
            report, result = self.post_scan_checks_and_reporting(config, backend, assessments)
        finally:
            self.utils.remove(script)
            logger.debug('Removed Detect script', path=str(script))

        error = decide_outcome(classification, result.policy_violations, config, exit_code)
        if error is not None:
            error.report = report
            raise error
        return report

    def _download_script(self, config: DetectConfig, script: Path) -> None:
        url = resolve_script_url(config, os.environ)
        logger.info('Downloading Detect script', url=url, path=str(script))
        try:
            self.utils.download(url, script)
        except (requests.RequestException, OSError) as e:
            raise ScriptDownloadFailed(f"failed to download '{script.name}' script: {e}") from e

    def _execute(self, config: DetectConfig, script: Path) -> tuple[int, ExitCodeClassification]:
        args = build_detect_args([f"./{script.name}"], config)
        env = {
            **os.environ,
            'BLACKDUCK_SKIP_PHONE_HOME': 'true',
            **parse_environment(config.custom_environment_variables),
        }

        logger.info('Running Detect', command=' '.join(args), cwd=str(config.working_dir))
        start_time = time.time()
        try:
            exit_code = self.utils.run(
                SHELL, ['-c', ' '.join(args)], env=env, cwd=config.working_dir, timeout=config.scan_timeout,
            )
        except subprocess.TimeoutExpired as e:
            classification = ExitCodeClassification(
                FAILURE_TIMEOUT, f"{FAILURE_TIMEOUT} => Detect did not finish within {e.timeout}s.",
            )
            logger.error('Detect scan timed out', timeout=e.timeout)
            raise ScannerExecutionFailure(classification) from e
        elapsed = time.time() - start_time

        classification = self.classifier.classify(exit_code)
        if classification.succeeded:
            logger.info('Detect scan finished', exit_code=exit_code, elapsed=f"{elapsed:.3f}s")
        else:
            logger.error(
                'Detect scan failed',
                exit_code=exit_code,
                category=classification.category,
                error_category=classification.error_category,
                cause=classification.message,
                elapsed=f"{elapsed:.3f}s",
                _style='bold red',
            )
        return exit_code, classification

    def post_scan_checks_and_reporting(
        self,
        config: DetectConfig,
        backend: BackendClient,
        assessments: Iterable[Assessment] = (),
    ) -> tuple[DetectReport, ReconciliationResult]:
        """Fetch the scan snapshot from Black Duck, reconcile it and write the reports."""
        project, version = config.project_name, config.version_name

        vulnerabilities = backend.get_vulnerabilities(project, version)
        hierarchical_components = backend.get_hierarchical_components(project, version)
        license_components = backend.get_components_with_license_policy_rule(project, version)
        policy_status = backend.get_policy_status(project, version)

        engine = self.engine_factory()
        result = engine.reconcile(
            license_components.items,
            hierarchical_components.items,
            vulnerabilities,
            assessments,
            policy_status,
        )
        report, _ = self.report_service.write(config, result)

        if result.policy_violations > 0:
            logger.error(
                'License Policy Violations found',
                violations=result.policy_violations,
                overall_status=policy_status.overall_status,
                _style='bold red',
            )
        return report, result
