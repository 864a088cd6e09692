from typing import Any

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import field_validator


class PolicyViolationDetails(BaseModel):
    name: str = ''
    severity_levels: dict[str, int] = Field(alias='severityLevels', default_factory=dict)

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    @field_validator('severity_levels', mode='before')
    @classmethod
    def parse_severity_levels(cls, v: Any) -> dict[str, int]:
        """Black Duck sends `[{"name": "BLOCKER", "value": 1}, ...]`."""
        if not v:
            return {}
        if isinstance(v, list):
            return {
                item['name']: int(item.get('value', 0))
                for item in v if isinstance(item, dict) and item.get('name')
            }
        return v


class PolicyStatus(BaseModel):
    overall_status: str = Field(alias='overallStatus', default='')
    violation_details: PolicyViolationDetails = Field(
        alias='componentVersionPolicyViolationDetails',
        default_factory=PolicyViolationDetails,
    )

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    @property
    def total_violations(self) -> int:
        return sum(self.violation_details.severity_levels.values())
