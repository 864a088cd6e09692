"""Reconciliation of Black Duck findings against risk-acceptance assessments."""
from collections.abc import Iterable
from dataclasses import dataclass
from dataclasses import field

import structlog

from detectgate.core.errors import IdentityResolutionError
from detectgate.core.stats import ScanStats
from detectgate.models.assessment import Assessment
from detectgate.models.component import Component
from detectgate.models.component import HierarchicalComponent
from detectgate.models.component import IN_VIOLATION
from detectgate.models.policy import PolicyStatus
from detectgate.models.vulnerability import RemediationStatus
from detectgate.models.vulnerability import Severity
from detectgate.models.vulnerability import Vulnerability
from detectgate.models.vulnerability import VulnerabilitySet
from detectgate.services.identity_service import IdentityResolver

logger = structlog.get_logger('reconciliation_service')

INACTIVE_REMEDIATION_STATUSES = frozenset({
    RemediationStatus.IGNORED.value,
    RemediationStatus.REMEDIATION_COMPLETE.value,
    RemediationStatus.MITIGATED.value,
    RemediationStatus.PATCHED.value,
    RemediationStatus.DUPLICATE.value,
    RemediationStatus.NOT_AFFECTED.value,
})

MAJOR_SEVERITIES = frozenset({Severity.HIGH, Severity.CRITICAL})


def is_active_policy_violation(status: str) -> bool:
    return status == IN_VIOLATION


def count_active_policy_violations(components: Iterable[Component]) -> int:
    return sum(1 for c in components if is_active_policy_violation(c.policy_status))


def is_active_vulnerability(vulnerability: Vulnerability) -> bool:
    return vulnerability.remediation_status.upper() not in INACTIVE_REMEDIATION_STATUSES


def is_major_vulnerability(vulnerability: Vulnerability) -> bool:
    return not vulnerability.ignored and vulnerability.severity in MAJOR_SEVERITIES


def build_component_lookup(
    components: Iterable[HierarchicalComponent],
) -> dict[str, HierarchicalComponent]:
    """Index components by `<name>/<version>`; the first occurrence of a key wins."""
    lookup: dict[str, HierarchicalComponent] = {}
    for component in components:
        if component.key in lookup:
            logger.warning('Duplicate hierarchical component ignored', component=component.key)
            continue
        lookup[component.key] = component
    return lookup


def attach_components(
    vulnerabilities: VulnerabilitySet,
    components: Iterable[HierarchicalComponent],
) -> VulnerabilitySet:
    """Return a copy of `vulnerabilities` with each owning component attached."""
    lookup = build_component_lookup(components)
    attached = []
    for vulnerability in vulnerabilities.items:
        component = lookup.get(vulnerability.component_key)
        if component is None:
            logger.debug(
                'No component for vulnerability',
                vulnerability=vulnerability.name, component=vulnerability.component_key,
            )
        attached.append(vulnerability.model_copy(update={'component': component}))
    return VulnerabilitySet.of(attached)


@dataclass(frozen=True)
class UnresolvedPurl:
    vulnerability_name: str
    purl: str
    reason: str


@dataclass
class ReconciliationResult:
    policy_violations: int
    unassessed: VulnerabilitySet
    assessed: VulnerabilitySet
    policy_status: PolicyStatus | None = None
    unresolved_purls: list[UnresolvedPurl] = field(default_factory=list)
    unmatched_assessments: list[Assessment] = field(default_factory=list)
    stats: ScanStats = field(default_factory=ScanStats)


class ReconciliationEngine:
    """
    Correlates vulnerabilities, component origins and assessments.

    An engine holds the diagnostics of the passes it ran, so each scan run
    must use its own instance.
    """

    def __init__(self, resolver: IdentityResolver | None = None):
        self.resolver = resolver or IdentityResolver()
        self.unresolved_purls: list[UnresolvedPurl] = []
        self.applied_assessments: list[Assessment] = []

    def _resolve_coordinates(self, assessment: Assessment) -> set[str]:
        coordinates = set()
        for purl in assessment.purls:
            try:
                coordinates.add(self.resolver.to_vendor_coordinate(purl).coordinate)
            except IdentityResolutionError as e:
                self.unresolved_purls.append(
                    UnresolvedPurl(assessment.vulnerability_name, purl, e.reason),
                )
                logger.warning(
                    'Assessment purl did not apply',
                    vulnerability=assessment.vulnerability_name,
                    purl=purl,
                    error_type=type(e).__name__,
                    reason=e.reason,
                )
        return coordinates

    def filter_assessed_vulnerabilities(
        self,
        vulnerabilities: VulnerabilitySet,
        assessments: Iterable[Assessment],
        component_lookup: dict[str, HierarchicalComponent],
    ) -> tuple[VulnerabilitySet, VulnerabilitySet]:
        """
        Split vulnerabilities into (unassessed, assessed).

        A vulnerability is assessed when an assessment names it and one of the
        assessment's purls resolves to an origin coordinate of the
        vulnerability's component. Anything else, including vulnerabilities
        without a known component, stays unassessed.
        """
        by_name: dict[str, list[tuple[Assessment, set[str]]]] = {}
        for assessment in assessments:
            by_name.setdefault(assessment.vulnerability_name, []).append(
                (assessment, self._resolve_coordinates(assessment)),
            )

        unassessed: list[Vulnerability] = []
        assessed: list[Vulnerability] = []
        for vulnerability in vulnerabilities.items:
            component = component_lookup.get(vulnerability.component_key)
            matching = [
                assessment
                for assessment, coordinates in by_name.get(vulnerability.name, [])
                if component is not None and any(component.has_coordinate(c) for c in coordinates)
            ]
            if matching:
                assessed.append(vulnerability)
                self.applied_assessments.extend(
                    a for a in matching if a not in self.applied_assessments
                )
            else:
                unassessed.append(vulnerability)

        return VulnerabilitySet.of(unassessed), VulnerabilitySet.of(assessed)

    def reconcile(
        self,
        components: Iterable[Component],
        hierarchical_components: Iterable[HierarchicalComponent],
        vulnerabilities: VulnerabilitySet,
        assessments: Iterable[Assessment],
        policy_status: PolicyStatus | None = None,
    ) -> ReconciliationResult:
        """Run the full pass over one scan snapshot."""
        stats = ScanStats()
        assessments = list(assessments)
        hierarchical_components = list(hierarchical_components)
        unresolved_before = len(self.unresolved_purls)
        self.applied_assessments = []

        lookup = build_component_lookup(hierarchical_components)
        attached = attach_components(vulnerabilities, hierarchical_components)
        unassessed, assessed = self.filter_assessed_vulnerabilities(attached, assessments, lookup)

        for vulnerability in unassessed.items:
            if is_active_vulnerability(vulnerability):
                stats.inc_active(major=is_major_vulnerability(vulnerability))

        unmatched = [a for a in assessments if a not in self.applied_assessments]
        for assessment in unmatched:
            logger.info(
                'Assessment matched no vulnerability',
                vulnerability=assessment.vulnerability_name,
                purls=assessment.purls,
            )

        stats.policy_violations = count_active_policy_violations(components)
        stats.assessed_vulnerabilities = len(assessed)
        unresolved = self.unresolved_purls[unresolved_before:]
        stats.unresolved_purls = len(unresolved)

        logger.info('Reconciliation complete', **stats.as_dict())

        return ReconciliationResult(
            policy_violations=stats.policy_violations,
            unassessed=unassessed,
            assessed=assessed,
            policy_status=policy_status,
            unresolved_purls=list(unresolved),
            unmatched_assessments=unmatched,
            stats=stats,
        )
