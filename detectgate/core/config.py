"""Configuration management for detectgate."""
import os
from dataclasses import dataclass
from dataclasses import field
from dataclasses import fields
from pathlib import Path


@dataclass
class PathConfig:
    """File locations used during a scan run."""
    report_dir: Path = field(
        default_factory=lambda: Path(os.getenv('DETECTGATE_REPORT_DIR', '.')),
    )
    assessment_file: Path = field(
        default_factory=lambda: Path(
            os.getenv('DETECTGATE_ASSESSMENT_FILE', '.pipeline/assessments.yaml'),
        ),
    )
    script_name: str = 'detect.sh'

    @property
    def ip_report_path(self) -> Path:
        return self.report_dir / 'blackduck-ip.json'

    @property
    def policy_report_path(self) -> Path:
        return self.report_dir / 'blackduck-policy-status.json'

    @property
    def vulnerability_report_path(self) -> Path:
        return self.report_dir / 'blackduck-vulnerabilities.json'


@dataclass
class BlackDuckConfig:
    """Black Duck REST API client settings."""
    request_timeout: float = field(
        default_factory=lambda: float(os.getenv('BLACKDUCK_REQUEST_TIMEOUT', '60')),
    )
    retries: int = 3
    page_limit: int = 999
    version_page_limit: int = 100


@dataclass
class DetectConfig:
    """Options of a single Detect scan run."""
    server_url: str = field(default_factory=lambda: os.getenv('BLACKDUCK_URL', ''))
    token: str = field(default_factory=lambda: os.getenv('BLACKDUCK_TOKEN', ''))
    project_name: str = ''
    version: str = ''
    versioning_model: str = 'major'
    custom_scan_version: str = ''
    code_location: str = ''
    groups: list[str] = field(default_factory=list)
    fail_on: list[str] = field(default_factory=lambda: ['BLOCKER'])
    fail_on_severe_vulnerabilities: bool = False
    scan_paths: list[str] = field(default_factory=lambda: ['.'])
    scan_properties: list[str] = field(default_factory=list)
    dependency_path: str = ''
    unmap: bool = False
    scan_on_changes: bool = False
    min_scan_interval: int = 0
    included_package_managers: list[str] = field(default_factory=list)
    excluded_package_managers: list[str] = field(default_factory=list)
    maven_excluded_scopes: list[str] = field(default_factory=list)
    detect_tools: list[str] = field(default_factory=list)
    build_tool: str = ''
    m2_path: str = ''
    project_settings_file: str = ''
    global_settings_file: str = ''
    custom_environment_variables: list[str] = field(default_factory=list)
    detect_version: str = ''
    working_dir: Path = field(default_factory=lambda: Path('.'))
    scan_timeout: float | None = None

    def __repr__(self) -> str:
        values = ', '.join(
            f"{f.name}='*****'" if f.name == 'token' else f"{f.name}={getattr(self, f.name)!r}"
            for f in fields(self)
        )
        return f"DetectConfig({values})"

    @property
    def version_name(self) -> str:
        """Version name Detect reports the scan under."""
        if self.custom_scan_version:
            return self.custom_scan_version
        return apply_versioning_model(self.versioning_model, self.version)


def apply_versioning_model(model: str, version: str) -> str:
    """
    Cut a full version down to what the versioning model keeps.

    `major` keeps "1", `major-minor` keeps "1.2", `semantic` keeps "1.2.3"
    (padding missing parts with zeros) and `full` keeps everything.
    """
    if not version or model == 'full':
        return version
    parts = version.split('.')
    if model == 'major':
        return parts[0]
    if model == 'major-minor':
        return '.'.join((parts + ['0'])[:2])
    if model == 'semantic':
        return '.'.join((parts + ['0', '0'])[:3])
    raise ValueError(f"Unknown versioning model: {model}")


@dataclass
class DetectGateConfig:
    paths: PathConfig = field(default_factory=PathConfig)
    blackduck: BlackDuckConfig = field(default_factory=BlackDuckConfig)

    @classmethod
    def load(cls) -> 'DetectGateConfig':
        return cls()


_config: DetectGateConfig | None = None


def get_config() -> DetectGateConfig:
    global _config
    if _config is None:
        _config = DetectGateConfig.load()
    return _config
