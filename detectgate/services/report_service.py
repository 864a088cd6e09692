from pathlib import Path

import structlog
from pydantic import BaseModel

from detectgate.core.config import DetectConfig
from detectgate.core.config import PathConfig
from detectgate.models.report import DetectReport
from detectgate.models.report import IpReport
from detectgate.models.report import PolicyReport
from detectgate.models.report import UnresolvedPurlEntry
from detectgate.services.reconciliation_service import ReconciliationResult

logger = structlog.get_logger('report_service')


class ReportService:
    """Persists reconciliation results as JSON report files."""

    def __init__(self, paths: PathConfig):
        self.paths = paths

    def build_report(self, config: DetectConfig, result: ReconciliationResult) -> DetectReport:
        return DetectReport(
            project_name=config.project_name,
            version_name=config.version_name,
            policy_violations=result.policy_violations,
            unassessed_vulnerabilities=result.unassessed,
            assessed_vulnerabilities=result.assessed,
            unresolved_purls=[
                UnresolvedPurlEntry(vulnerability=u.vulnerability_name, purl=u.purl, reason=u.reason)
                for u in result.unresolved_purls
            ],
            statistics=result.stats.as_dict(),
        )

    def _write(self, path: Path, model: BaseModel) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        # Temporary file + rename for atomic write
        temp_path = path.with_suffix('.tmp')
        temp_path.write_text(model.model_dump_json(by_alias=True), encoding='utf-8')
        temp_path.replace(path)
        return path

    def write(self, config: DetectConfig, result: ReconciliationResult) -> tuple[DetectReport, list[Path]]:
        """Write policy, vulnerability and IP reports; returns the report and the paths written."""
        report = self.build_report(config, result)

        written = [
            self._write(
                self.paths.policy_report_path,
                PolicyReport(
                    project_name=config.project_name,
                    version_name=config.version_name,
                    policy_status=result.policy_status,
                ),
            ),
            self._write(self.paths.vulnerability_report_path, report),
        ]
        ip_report = IpReport(
            policy_violations=result.policy_violations,
            reports=[str(p) for p in written],
        )
        written.append(self._write(self.paths.ip_report_path, ip_report))

        logger.info(
            'Reports written',
            paths=[str(p) for p in written],
            policy_violations=result.policy_violations,
        )
        return report, written
