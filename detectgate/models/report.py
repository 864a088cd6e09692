from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from detectgate.models.policy import PolicyStatus
from detectgate.models.vulnerability import VulnerabilitySet


class UnresolvedPurlEntry(BaseModel):
    vulnerability: str
    purl: str
    reason: str


class DetectReport(BaseModel):
    """Outcome of one scan run, as persisted for auditing."""
    project_name: str = Field(alias='projectName', default='')
    version_name: str = Field(alias='versionName', default='')
    policy_violations: int = Field(alias='policyViolations', default=0)
    unassessed_vulnerabilities: VulnerabilitySet = Field(
        alias='unassessedVulnerabilities', default_factory=VulnerabilitySet,
    )
    assessed_vulnerabilities: VulnerabilitySet = Field(
        alias='assessedVulnerabilities', default_factory=VulnerabilitySet,
    )
    unresolved_purls: list[UnresolvedPurlEntry] = Field(alias='unresolvedPurls', default_factory=list)
    statistics: dict[str, int] = Field(default_factory=dict)

    model_config = ConfigDict(populate_by_name=True)


class IpReport(BaseModel):
    """The `blackduck-ip.json` summary consumed by later pipeline stages."""
    policy_violations: int = Field(alias='policyViolations')
    reports: list[str] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)


class PolicyReport(BaseModel):
    project_name: str = Field(alias='projectName', default='')
    version_name: str = Field(alias='versionName', default='')
    policy_status: PolicyStatus | None = Field(alias='policyStatus', default=None)

    model_config = ConfigDict(populate_by_name=True)
