import time
from dataclasses import dataclass
from dataclasses import field


@dataclass
class ScanStats:
    """Counters of one reconciliation pass, reported at the end of a scan."""
    vulnerabilities: int = 0
    major_vulnerabilities: int = 0
    assessed_vulnerabilities: int = 0
    policy_violations: int = 0
    unresolved_purls: int = 0
    start_time: float = field(default_factory=time.time)

    def inc_active(self, major: bool = False):
        self.vulnerabilities += 1
        if major:
            self.major_vulnerabilities += 1

    @property
    def minor_vulnerabilities(self) -> int:
        return self.vulnerabilities - self.major_vulnerabilities

    @property
    def elapsed_time(self) -> float:
        return time.time() - self.start_time

    def as_dict(self) -> dict[str, int]:
        return {
            'vulnerabilities': self.vulnerabilities,
            'major_vulnerabilities': self.major_vulnerabilities,
            'minor_vulnerabilities': self.minor_vulnerabilities,
            'assessed_vulnerabilities': self.assessed_vulnerabilities,
            'policy_violations': self.policy_violations,
            'unresolved_purls': self.unresolved_purls,
        }
