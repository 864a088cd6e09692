import pytest
from structlog.testing import capture_logs

from conftest import COMPONENTS_CONTENT
from conftest import HIERARCHICAL_COMPONENTS_CONTENT
from conftest import VULNERABILITIES_CONTENT
from detectgate.models.assessment import Assessment
from detectgate.models.component import ComponentSet
from detectgate.models.component import HierarchicalComponent
from detectgate.models.component import HierarchicalComponentSet
from detectgate.models.vulnerability import Vulnerability
from detectgate.models.vulnerability import VulnerabilitySet
from detectgate.services.reconciliation_service import attach_components
from detectgate.services.reconciliation_service import build_component_lookup
from detectgate.services.reconciliation_service import count_active_policy_violations
from detectgate.services.reconciliation_service import is_active_policy_violation
from detectgate.services.reconciliation_service import is_active_vulnerability
from detectgate.services.reconciliation_service import is_major_vulnerability
from detectgate.services.reconciliation_service import ReconciliationEngine


@pytest.fixture
def components():
    return ComponentSet.model_validate(COMPONENTS_CONTENT).items


@pytest.fixture
def hierarchical_components():
    return HierarchicalComponentSet.model_validate(HIERARCHICAL_COMPONENTS_CONTENT).items


@pytest.fixture
def vulnerabilities():
    return VulnerabilitySet.model_validate(VULNERABILITIES_CONTENT)


@pytest.fixture
def spring_assessment():
    return Assessment(
        vulnerability='BDSA-2019-2021',
        analysis='RiskAccepted',
        purls=['pkg:maven/spring/spring-web@5.3.9'],
    )


def make_vulnerability(severity='HIGH', ignored=False, status='NEW', **kwargs):
    return Vulnerability(
        name=kwargs.get('name', 'CVE-2021-0001'),
        component_name=kwargs.get('component_name', 'Spring Framework'),
        component_version=kwargs.get('component_version', '5.3.9'),
        severity=severity,
        ignored=ignored,
        remediation_status=status,
    )


def test_is_active_policy_violation():
    assert is_active_policy_violation('IN_VIOLATION')
    assert not is_active_policy_violation('NOT_IN_VIOLATION')
    assert not is_active_policy_violation('UNKNOWN')


def test_count_active_policy_violations(components):
    assert len(components) == 3
    assert count_active_policy_violations(components) == 2


def test_is_major_vulnerability():
    assert is_major_vulnerability(make_vulnerability('HIGH'))
    assert is_major_vulnerability(make_vulnerability('CRITICAL'))
    assert not is_major_vulnerability(make_vulnerability('HIGH', ignored=True))
    assert not is_major_vulnerability(make_vulnerability('MEDIUM'))
    assert not is_major_vulnerability(make_vulnerability('MEDIUM', ignored=True))


@pytest.mark.parametrize('status,active', [
    ('NEW', True),
    ('NEEDS_REVIEW', True),
    ('REMEDIATION_REQUIRED', True),
    ('IGNORED', False),
    ('ignored', False),
    ('PATCHED', False),
    ('MITIGATED', False),
    ('REMEDIATION_COMPLETE', False),
    ('DUPLICATE', False),
    ('NOT_AFFECTED', False),
])
def test_is_active_vulnerability(status, active):
    assert is_active_vulnerability(make_vulnerability(status=status)) is active


def test_build_component_lookup_first_seen_wins():
    first = HierarchicalComponent(name='lib', version='1.0', origins=[{'externalId': 'a:lib:1.0'}])
    second = HierarchicalComponent(name='lib', version='1.0', origins=[{'externalId': 'b:lib:1.0'}])

    with capture_logs() as captured:
        lookup = build_component_lookup([first, second])

    assert lookup == {'lib/1.0': first}
    assert any(e['event'] == 'Duplicate hierarchical component ignored' for e in captured)


def test_attach_components(vulnerabilities, hierarchical_components):
    attached = attach_components(vulnerabilities, hierarchical_components)

    assert attached.total_count == 3
    assert attached.items[0].component.key == 'Spring Framework/5.3.9'
    assert attached.items[1].component.key == 'Apache Log4j/4.5.16'
    # Input is left untouched
    assert vulnerabilities.items[0].component is None


def test_attach_components_unknown_component(hierarchical_components):
    vulnerabilities = VulnerabilitySet.of([make_vulnerability(component_name='Unknown')])
    attached = attach_components(vulnerabilities, hierarchical_components)
    assert attached.items[0].component is None


def test_reconcile_end_to_end(components, hierarchical_components, vulnerabilities, spring_assessment):
    engine = ReconciliationEngine()
    result = engine.reconcile(components, hierarchical_components, vulnerabilities, [spring_assessment])

    assert result.assessed.total_count == 1
    assert result.assessed.items[0].name == 'BDSA-2019-2021'
    assert result.unassessed.total_count == 2
    assert [v.name for v in result.unassessed.items] == ['BDSA-2020-4711', 'BDSA-2020-4712']
    assert all(v.component_name == 'Apache Log4j' for v in result.unassessed.items)
    assert result.policy_violations == 2
    assert result.unresolved_purls == []
    assert result.unmatched_assessments == []


def test_reconcile_stats_count_active_unassessed(components, hierarchical_components):
    vulnerabilities = VulnerabilitySet.of([
        make_vulnerability('HIGH', name='CVE-1'),
        make_vulnerability('MEDIUM', name='CVE-2'),
        make_vulnerability('CRITICAL', name='CVE-3', status='IGNORED'),
    ])
    result = ReconciliationEngine().reconcile(components, hierarchical_components, vulnerabilities, [])

    assert result.stats.vulnerabilities == 2
    assert result.stats.major_vulnerabilities == 1
    assert result.stats.minor_vulnerabilities == 1
    assert result.stats.policy_violations == 2


def test_assessment_requires_matching_coordinate(components, hierarchical_components, vulnerabilities):
    """The vulnerability name alone is not enough to accept a risk."""
    assessment = Assessment(vulnerability='BDSA-2019-2021', purls=['pkg:maven/other/spring-web@5.3.9'])
    result = ReconciliationEngine().reconcile(
        components, hierarchical_components, vulnerabilities, [assessment],
    )

    assert result.assessed.total_count == 0
    assert result.unassessed.total_count == 3
    assert result.unmatched_assessments == [assessment]


def test_assessment_with_multiple_purls(components, hierarchical_components, vulnerabilities):
    assessment = Assessment(
        vulnerability='BDSA-2020-4711',
        purls=['pkg:maven/apache/tomcat@9.0.52', 'pkg:maven/apache/log4j@4.5.16'],
    )
    result = ReconciliationEngine().reconcile(
        components, hierarchical_components, vulnerabilities, [assessment],
    )

    assert [v.name for v in result.assessed.items] == ['BDSA-2020-4711']
    assert result.unassessed.total_count == 2


def test_unresolved_purls_are_recorded_not_raised(components, hierarchical_components, vulnerabilities):
    assessment = Assessment(
        vulnerability='BDSA-2019-2021',
        purls=['garbage', 'pkg:cargo/serde@1.0.0', 'pkg:maven/spring/spring-web@5.3.9'],
    )
    engine = ReconciliationEngine()

    with capture_logs() as captured:
        result = engine.reconcile(components, hierarchical_components, vulnerabilities, [assessment])

    assert result.assessed.total_count == 1
    assert [u.purl for u in result.unresolved_purls] == ['garbage', 'pkg:cargo/serde@1.0.0']
    assert all(u.vulnerability_name == 'BDSA-2019-2021' for u in result.unresolved_purls)
    assert result.stats.unresolved_purls == 2

    warnings = [e for e in captured if e['event'] == 'Assessment purl did not apply']
    assert {e['error_type'] for e in warnings} == {'MalformedPurl', 'UnsupportedEcosystem'}


def test_vulnerability_without_component_stays_unassessed(components, hierarchical_components):
    vulnerabilities = VulnerabilitySet.of([
        make_vulnerability(name='BDSA-2019-2021', component_name='Spring Framework', component_version='9.9.9'),
    ])
    assessment = Assessment(vulnerability='BDSA-2019-2021', purls=['pkg:maven/spring/spring-web@5.3.9'])

    result = ReconciliationEngine().reconcile(
        components, hierarchical_components, vulnerabilities, [assessment],
    )
    assert result.unassessed.total_count == 1
    assert result.assessed.total_count == 0


@pytest.mark.parametrize('assessments', [
    [],
    [Assessment(vulnerability='BDSA-2019-2021', purls=['pkg:maven/spring/spring-web@5.3.9'])],
    [
        Assessment(vulnerability='BDSA-2020-4711', purls=['pkg:maven/apache/log4j@4.5.16']),
        Assessment(vulnerability='BDSA-2020-4712', purls=['pkg:maven/apache/log4j@4.5.16']),
        Assessment(vulnerability='BDSA-2019-2021', purls=['pkg:maven/spring/spring-web@5.3.9']),
    ],
    [Assessment(vulnerability='CVE-0000-0000', purls=['bogus'])],
])
def test_partition_law(hierarchical_components, vulnerabilities, assessments):
    lookup = build_component_lookup(hierarchical_components)
    engine = ReconciliationEngine()
    unassessed, assessed = engine.filter_assessed_vulnerabilities(vulnerabilities, assessments, lookup)

    assert len(unassessed.items) + len(assessed.items) == len(vulnerabilities.items)
    assert unassessed.total_count == len(unassessed.items)
    assert assessed.total_count == len(assessed.items)


def test_each_engine_keeps_its_own_diagnostics(components, hierarchical_components, vulnerabilities):
    assessment = Assessment(vulnerability='BDSA-2019-2021', purls=['garbage'])
    first = ReconciliationEngine()
    first.reconcile(components, hierarchical_components, vulnerabilities, [assessment])
    second = ReconciliationEngine()

    assert len(first.unresolved_purls) == 1
    assert second.unresolved_purls == []


def test_repeated_reconcile_reports_current_unmatched(
    components, hierarchical_components, vulnerabilities, spring_assessment,
):
    engine = ReconciliationEngine()
    engine.reconcile(components, hierarchical_components, vulnerabilities, [spring_assessment])

    # The next snapshot no longer contains the assessed vulnerability
    remaining = VulnerabilitySet.of([v for v in vulnerabilities.items if v.name != 'BDSA-2019-2021'])
    result = engine.reconcile(components, hierarchical_components, remaining, [spring_assessment])

    assert result.assessed.total_count == 0
    assert result.unmatched_assessments == [spring_assessment]
