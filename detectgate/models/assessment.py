from enum import Enum
from typing import Any

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import field_validator


class AnalysisOutcome(str, Enum):
    RISK_ACCEPTED = 'RiskAccepted'
    FALSE_POSITIVE = 'FalsePositive'
    WAS_REMEDIATED = 'WasRemediated'
    NOT_PRESENT = 'NotPresent'
    MITIGATED = 'Mitigated'

    def __str__(self) -> str:
        return self.value


class Assessment(BaseModel):
    """A reviewed vulnerability, accepted for the listed package URLs."""
    vulnerability_name: str = Field(alias='vulnerability')
    analysis_outcome: AnalysisOutcome = Field(
        alias='analysis', default=AnalysisOutcome.RISK_ACCEPTED,
    )
    status: str = ''
    description: str = ''
    purls: list[str] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True, extra='ignore', frozen=True)

    @field_validator('purls', mode='before')
    @classmethod
    def parse_purls(cls, v: Any) -> list[str]:
        """Accept `- pkg:...` as well as `- purl: pkg:...` entries."""
        if not v:
            return []
        if isinstance(v, str):
            v = [v]
        parsed: list[str] = []
        for item in v:
            if isinstance(item, dict):
                item = item.get('purl')
            if isinstance(item, str) and item.strip() and item.strip() not in parsed:
                parsed.append(item.strip())
        return parsed
