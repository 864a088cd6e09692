import pytest
from pydantic import ValidationError

from conftest import POLICY_STATUS_CONTENT
from conftest import VULNERABILITIES_CONTENT
from detectgate.models.assessment import AnalysisOutcome
from detectgate.models.assessment import Assessment
from detectgate.models.component import HierarchicalComponent
from detectgate.models.policy import PolicyStatus
from detectgate.models.vulnerability import Severity
from detectgate.models.vulnerability import Vulnerability
from detectgate.models.vulnerability import VulnerabilitySet


def test_vulnerability_flattens_remediation():
    raw = VULNERABILITIES_CONTENT['items'][0]
    vulnerability = Vulnerability.model_validate(raw)

    assert vulnerability.name == 'BDSA-2019-2021'
    assert vulnerability.component_name == 'Spring Framework'
    assert vulnerability.component_version == '5.3.9'
    assert vulnerability.severity == Severity.HIGH
    assert vulnerability.overall_score == 7.5
    assert vulnerability.remediation_status == 'IGNORED'
    assert vulnerability.component_key == 'Spring Framework/5.3.9'
    # Source data is not modified
    assert 'vulnerabilityWithRemediation' in raw


@pytest.mark.parametrize('raw,expected', [
    ('high', Severity.HIGH),
    ('CRITICAL', Severity.CRITICAL),
    ('bogus', Severity.UNSPECIFIED),
    (None, Severity.UNSPECIFIED),
])
def test_vulnerability_severity_parsing(raw, expected):
    assert Vulnerability(name='CVE-1', severity=raw).severity == expected


def test_vulnerability_set_total_count_must_match():
    with pytest.raises(ValidationError):
        VulnerabilitySet.model_validate({'totalCount': 5, 'items': VULNERABILITIES_CONTENT['items']})


def test_vulnerability_set_of():
    items = [Vulnerability(name='CVE-1'), Vulnerability(name='CVE-2')]
    vulnerabilities = VulnerabilitySet.of(items)
    assert vulnerabilities.total_count == 2
    assert len(vulnerabilities) == 2
    assert VulnerabilitySet().total_count == 0


def test_attached_component_is_not_serialized():
    component = HierarchicalComponent(name='Spring Framework', version='5.3.9')
    vulnerability = Vulnerability(name='CVE-1', component=component)
    assert 'component' not in vulnerability.model_dump(by_alias=True)


def test_policy_status_severity_levels():
    status = PolicyStatus.model_validate(POLICY_STATUS_CONTENT)
    assert status.overall_status == 'IN_VIOLATION'
    assert status.violation_details.severity_levels == {'BLOCKER': 1, 'CRITICAL': 1}
    assert status.total_violations == 2


def test_policy_status_defaults():
    status = PolicyStatus.model_validate({'overallStatus': 'NOT_IN_VIOLATION'})
    assert status.total_violations == 0


def test_assessment_aliases_and_defaults():
    assessment = Assessment.model_validate({
        'vulnerability': 'BDSA-2019-2021',
        'purls': ['pkg:maven/spring/spring-web@5.3.9'],
    })
    assert assessment.vulnerability_name == 'BDSA-2019-2021'
    assert assessment.analysis_outcome == AnalysisOutcome.RISK_ACCEPTED


@pytest.mark.parametrize('purls,expected', [
    ('pkg:npm/lodash@4.17.21', ['pkg:npm/lodash@4.17.21']),
    ([{'purl': 'pkg:npm/lodash@4.17.21'}, ' pkg:npm/lodash@4.17.21 '], ['pkg:npm/lodash@4.17.21']),
    (['pkg:npm/a@1', '', 'pkg:npm/b@2'], ['pkg:npm/a@1', 'pkg:npm/b@2']),
    (None, []),
])
def test_assessment_purl_forms(purls, expected):
    assessment = Assessment.model_validate({'vulnerability': 'CVE-1', 'purls': purls})
    assert assessment.purls == expected


def test_assessment_rejects_unknown_outcome():
    with pytest.raises(ValidationError):
        Assessment.model_validate({'vulnerability': 'CVE-1', 'analysis': 'Whatever'})
