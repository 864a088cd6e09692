"""Error taxonomy for detectgate."""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from detectgate.core.exit_codes import ExitCodeClassification

POLICY_VIOLATION_MESSAGE = 'License Policy Violations found'


class DetectGateError(Exception):
    """Base class for all detectgate errors."""
    error_category = 'undefined'
    # Scan report, when the error was raised after reconciliation
    report = None


class ScannerExecutionFailure(DetectGateError):
    """Detect exited with a non-zero (classified) exit code."""

    def __init__(self, classification: ExitCodeClassification, exit_code: int | None = None):
        super().__init__(classification.message)
        self.classification = classification
        self.exit_code = exit_code
        self.error_category = classification.error_category


class ScriptDownloadFailed(DetectGateError):
    """The Detect script could not be fetched."""
    error_category = 'infrastructure'


class BackendUnavailable(DetectGateError):
    """Transport or authentication failure talking to Black Duck."""
    error_category = 'connectivity'


class ProjectNotFound(BackendUnavailable):
    """The project or project version does not exist on Black Duck."""
    error_category = 'configuration'


class IdentityResolutionError(DetectGateError):
    """A package URL could not be turned into a vendor coordinate."""

    def __init__(self, purl: str, reason: str):
        super().__init__(f"{purl}: {reason}")
        self.purl = purl
        self.reason = reason


class MalformedPurl(IdentityResolutionError):
    pass


class UnsupportedEcosystem(IdentityResolutionError):
    pass


class PolicyViolationDetected(DetectGateError):
    """Black Duck reports active license policy violations."""
    error_category = 'compliance'

    def __init__(self, violations: int = 0):
        super().__init__(POLICY_VIOLATION_MESSAGE)
        self.violations = violations
