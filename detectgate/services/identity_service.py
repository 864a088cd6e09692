"""Translation of package URLs into Black Duck origin coordinates."""
from collections.abc import Callable
from typing import NamedTuple

import structlog
from packageurl import PackageURL

from detectgate.core.errors import MalformedPurl
from detectgate.core.errors import UnsupportedEcosystem

logger = structlog.get_logger('identity_service')

CoordinateBuilder = Callable[[PackageURL], str]


class VendorCoordinate(NamedTuple):
    coordinate: str
    ecosystem_namespace: str


class EcosystemStrategy(NamedTuple):
    namespace: str
    build: CoordinateBuilder


class EcosystemRegistry:
    """Purl type -> coordinate builder. New ecosystems are added by registration."""

    def __init__(self):
        self._strategies: dict[str, EcosystemStrategy] = {}

    def register(self, purl_type: str, namespace: str) -> Callable[[CoordinateBuilder], CoordinateBuilder]:
        def decorator(build: CoordinateBuilder) -> CoordinateBuilder:
            self._strategies[purl_type.lower()] = EcosystemStrategy(namespace, build)
            return build
        return decorator

    def get(self, purl_type: str) -> EcosystemStrategy | None:
        return self._strategies.get(purl_type.lower())

    def copy(self) -> 'EcosystemRegistry':
        registry = EcosystemRegistry()
        registry._strategies = dict(self._strategies)
        return registry

    @property
    def types(self) -> list[str]:
        return sorted(self._strategies)


default_registry = EcosystemRegistry()


@default_registry.register('maven', 'maven')
def maven_coordinate(purl: PackageURL) -> str:
    return f"{purl.namespace}:{purl.name}:{purl.version}"


@default_registry.register('npm', 'npmjs')
def npm_coordinate(purl: PackageURL) -> str:
    if purl.namespace:
        return f"{purl.namespace}/{purl.name}@{purl.version}"
    return f"{purl.name}@{purl.version}"


@default_registry.register('nuget', 'nuget')
def nuget_coordinate(purl: PackageURL) -> str:
    return f"{purl.name}:{purl.version}"


@default_registry.register('pypi', 'pypi')
def pypi_coordinate(purl: PackageURL) -> str:
    return f"{purl.name}/{purl.version}"


@default_registry.register('golang', 'golang')
def golang_coordinate(purl: PackageURL) -> str:
    if purl.namespace:
        return f"{purl.namespace}/{purl.name}:{purl.version}"
    return f"{purl.name}:{purl.version}"


@default_registry.register('gem', 'rubygems')
def gem_coordinate(purl: PackageURL) -> str:
    return f"{purl.name}/{purl.version}"


class IdentityResolver:
    """Converts package URLs into coordinates comparable with `Origin.vendor_coordinate`."""

    def __init__(self, registry: EcosystemRegistry | None = None):
        self.registry = registry or default_registry

    def to_vendor_coordinate(self, purl: str) -> VendorCoordinate:
        """
        Resolve a purl such as `pkg:maven/spring/spring-web@5.3.9`.

        Raises:
            MalformedPurl if the string does not parse or lacks a name or version
            UnsupportedEcosystem if no strategy is registered for the purl type
        """
        try:
            parsed = PackageURL.from_string(purl)
        except ValueError as e:
            raise MalformedPurl(purl, str(e)) from e

        strategy = self.registry.get(parsed.type)
        if strategy is None:
            raise UnsupportedEcosystem(purl, f"no coordinate strategy for type '{parsed.type}'")

        if not parsed.name or not parsed.version:
            raise MalformedPurl(purl, 'name and version are required')

        if parsed.type == 'maven' and not parsed.namespace:
            raise MalformedPurl(purl, 'maven purls need a group namespace')

        return VendorCoordinate(strategy.build(parsed), strategy.namespace)
