"""Dependency Injection Container."""
from typing import Optional

from detectgate.core.config import DetectConfig
from detectgate.core.config import DetectGateConfig
from detectgate.core.config import get_config
from detectgate.services.blackduck_service import BlackDuckService
from detectgate.services.detect_service import DetectService
from detectgate.services.detect_service import ShellDetectUtils
from detectgate.services.identity_service import IdentityResolver
from detectgate.services.reconciliation_service import ReconciliationEngine
from detectgate.services.report_service import ReportService


class Container:
    """Simple DI Container wiring services from configuration.

    Everything that holds per-run state is created fresh on every call.
    """

    _instance: Optional['Container'] = None

    def __init__(self) -> None:
        self.config: DetectGateConfig = get_config()

    @classmethod
    def get_instance(cls) -> 'Container':
        if cls._instance is None:
            cls._instance = Container()
        return cls._instance

    def create_blackduck_service(self, config: DetectConfig) -> BlackDuckService:
        return BlackDuckService(config.server_url, config.token, self.config.blackduck)

    def create_reconciliation_engine(self) -> ReconciliationEngine:
        return ReconciliationEngine(IdentityResolver())

    def create_report_service(self) -> ReportService:
        return ReportService(self.config.paths)

    def create_detect_service(self) -> DetectService:
        return DetectService(
            utils=ShellDetectUtils(timeout=self.config.blackduck.request_timeout),
            paths=self.config.paths,
            report_service=self.create_report_service(),
            engine_factory=self.create_reconciliation_engine,
        )


def get_container() -> Container:
    return Container.get_instance()
