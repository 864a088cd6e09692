from enum import Enum
from typing import Any

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import field_validator
from pydantic import model_validator

from detectgate.models.component import component_key
from detectgate.models.component import HierarchicalComponent


class Severity(str, Enum):
    LOW = 'LOW'
    MEDIUM = 'MEDIUM'
    HIGH = 'HIGH'
    CRITICAL = 'CRITICAL'
    UNSPECIFIED = 'UNSPECIFIED'

    def __str__(self) -> str:
        return self.value


class RemediationStatus(str, Enum):
    NEW = 'NEW'
    NEEDS_REVIEW = 'NEEDS_REVIEW'
    REMEDIATION_REQUIRED = 'REMEDIATION_REQUIRED'
    REMEDIATION_COMPLETE = 'REMEDIATION_COMPLETE'
    MITIGATED = 'MITIGATED'
    PATCHED = 'PATCHED'
    IGNORED = 'IGNORED'
    DUPLICATE = 'DUPLICATE'
    NOT_AFFECTED = 'NOT_AFFECTED'

    def __str__(self) -> str:
        return self.value


class Vulnerability(BaseModel):
    """One vulnerability on one component version.

    Black Duck nests the vulnerability fields under
    `vulnerabilityWithRemediation`; they are flattened on input.
    """
    name: str = Field(alias='vulnerabilityName', default='')
    component_name: str = Field(alias='componentName', default='')
    component_version: str = Field(alias='componentVersionName', default='')
    base_score: float = Field(alias='baseScore', default=0.0)
    overall_score: float = Field(alias='overallScore', default=0.0)
    severity: Severity = Severity.UNSPECIFIED
    remediation_status: str = Field(alias='remediationStatus', default='')
    description: str = ''
    ignored: bool = False
    # Attached during reconciliation, never serialized.
    component: HierarchicalComponent | None = Field(default=None, exclude=True)

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    @model_validator(mode='before')
    @classmethod
    def flatten_remediation(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get('vulnerabilityWithRemediation'), dict):
            outer = {k: v for k, v in data.items() if k != 'vulnerabilityWithRemediation'}
            data = {**data['vulnerabilityWithRemediation'], **outer}
        return data

    @field_validator('severity', mode='before')
    @classmethod
    def parse_severity(cls, v: Any) -> Severity:
        try:
            return Severity(str(v).upper())
        except ValueError:
            return Severity.UNSPECIFIED

    @property
    def component_key(self) -> str:
        return component_key(self.component_name, self.component_version)


class VulnerabilitySet(BaseModel):
    """Vulnerabilities of one project version; `total_count` always matches `items`."""
    total_count: int = Field(alias='totalCount', default=0)
    items: list[Vulnerability] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    @model_validator(mode='after')
    def check_total_count(self) -> 'VulnerabilitySet':
        if self.total_count != len(self.items):
            raise ValueError(
                f"totalCount {self.total_count} does not match {len(self.items)} items",
            )
        return self

    @classmethod
    def of(cls, items: list[Vulnerability]) -> 'VulnerabilitySet':
        return cls(total_count=len(items), items=list(items))

    def __len__(self) -> int:
        return len(self.items)
