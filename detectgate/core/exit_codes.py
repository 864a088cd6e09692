"""Mapping of Synopsys Detect exit codes to failure categories."""
from dataclasses import dataclass
from typing import NamedTuple

SUCCESS = 'SUCCESS'
FAILURE_POLICY_VIOLATION = 'FAILURE_POLICY_VIOLATION'
FAILURE_TIMEOUT = 'FAILURE_TIMEOUT'
FAILURE_UNKNOWN_ERROR = 'FAILURE_UNKNOWN_ERROR'
UNKNOWN_TABLE_ENTRY = 'unknown table entry'

# Codes at or above this value are scanner-internal crashes.
UNKNOWN_ERROR_THRESHOLD = 100


@dataclass(frozen=True)
class ExitCodeEntry:
    category: str
    description: str


DETECT_EXIT_CODES: dict[int, ExitCodeEntry] = {
    0: ExitCodeEntry(SUCCESS, 'Detect scan completed successfully.'),
    1: ExitCodeEntry(
        'FAILURE_BLACKDUCK_CONNECTIVITY',
        'Detect was unable to connect to Black Duck. Check your configuration and connection.',
    ),
    2: ExitCodeEntry(
        FAILURE_TIMEOUT,
        'Detect could not wait for actions to be completed on Black Duck. '
        'Check your Black Duck server or increase your timeout.',
    ),
    3: ExitCodeEntry(FAILURE_POLICY_VIOLATION, 'Detect found policy violations.'),
    4: ExitCodeEntry(
        'FAILURE_PROXY_CONNECTIVITY',
        'Detect was unable to use the configured proxy. Check your configuration and connection.',
    ),
    5: ExitCodeEntry(
        'FAILURE_DETECTOR',
        'Detect had one or more detector failures while extracting dependencies. '
        'Check that all projects build and your environment is configured correctly.',
    ),
    6: ExitCodeEntry(
        'FAILURE_SCAN',
        'Detect was unable to run the signature scanner against your source. Check your configuration.',
    ),
    7: ExitCodeEntry(
        'FAILURE_CONFIGURATION',
        "Detect was unable to start due to issues with it's configuration. Check and fix your configuration.",
    ),
    9: ExitCodeEntry(
        'FAILURE_DETECTOR_REQUIRED',
        'Detect did not run all of the required detectors. Fix detector issues or disable required detectors.',
    ),
    10: ExitCodeEntry(
        'FAILURE_BLACKDUCK_VERSION_NOT_SUPPORTED',
        'Detect attempted an operation that was not supported by your version of Black Duck. '
        'Ensure your Black Duck is compatible with this version of detect.',
    ),
    11: ExitCodeEntry(
        'FAILURE_BLACKDUCK_FEATURE_ERROR',
        'Detect encountered an error while attempting an operation on Black Duck. '
        'Ensure your Black Duck is compatible with this version of detect.',
    ),
    12: ExitCodeEntry(
        'FAILURE_POLARIS_CONNECTIVITY',
        'Detect was unable to connect to Polaris. Check your configuration and connection.',
    ),
    99: ExitCodeEntry(
        'FAILURE_GENERAL_ERROR',
        'Detect encountered a known error, details of the error are provided.',
    ),
    100: ExitCodeEntry(FAILURE_UNKNOWN_ERROR, 'Detect encountered an unknown error.'),
}

# Error category reported in the build log for each Detect category.
ERROR_CATEGORIES: dict[str, str] = {
    'FAILURE_BLACKDUCK_CONNECTIVITY': 'connectivity',
    'FAILURE_PROXY_CONNECTIVITY': 'connectivity',
    'FAILURE_POLARIS_CONNECTIVITY': 'connectivity',
    FAILURE_POLICY_VIOLATION: 'compliance',
    'FAILURE_CONFIGURATION': 'configuration',
    'FAILURE_BLACKDUCK_VERSION_NOT_SUPPORTED': 'configuration',
    FAILURE_TIMEOUT: 'infrastructure',
    'FAILURE_BLACKDUCK_FEATURE_ERROR': 'infrastructure',
}


class ExitCodeClassification(NamedTuple):
    category: str
    message: str

    @property
    def succeeded(self) -> bool:
        return self.category == SUCCESS

    @property
    def error_category(self) -> str:
        return ERROR_CATEGORIES.get(self.category, 'undefined')


class ExitCodeClassifier:
    """Turns an opaque Detect exit code into a category and a readable cause.

    The table is plain data; pass an extended mapping to cover exit codes of
    newer Detect releases.
    """

    def __init__(self, table: dict[int, ExitCodeEntry] | None = None):
        self.table = dict(DETECT_EXIT_CODES if table is None else table)

    def classify(self, code: int) -> ExitCodeClassification:
        # 0 is success whatever the table says
        entry = DETECT_EXIT_CODES[0] if code == 0 else self.table.get(code)
        if entry is None and code >= UNKNOWN_ERROR_THRESHOLD:
            entry = self.table.get(UNKNOWN_ERROR_THRESHOLD, DETECT_EXIT_CODES[UNKNOWN_ERROR_THRESHOLD])
        if entry is None:
            return ExitCodeClassification(UNKNOWN_TABLE_ENTRY, f"{code} => Not known exit code key")
        return ExitCodeClassification(entry.category, f"{entry.category} => {entry.description}")


_default_classifier = ExitCodeClassifier()


def classify(code: int) -> ExitCodeClassification:
    return _default_classifier.classify(code)
