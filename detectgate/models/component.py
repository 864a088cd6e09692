from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

IN_VIOLATION = 'IN_VIOLATION'


class Component(BaseModel):
    """A BOM component as reported by Black Duck for one project version."""
    name: str = Field(alias='componentName')
    version: str = Field(alias='componentVersionName', default='')
    primary_language: str = Field(alias='primaryLanguage', default='')
    policy_status: str = Field(alias='policyStatus', default='')

    model_config = ConfigDict(populate_by_name=True, extra='ignore', frozen=True)


class ComponentSet(BaseModel):
    total_count: int = Field(alias='totalCount', default=0)
    items: list[Component] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True, extra='ignore')


class Origin(BaseModel):
    """Where a component comes from, in the ecosystem's own coordinate syntax."""
    ecosystem_namespace: str = Field(alias='externalNamespace', default='')
    vendor_coordinate: str = Field(alias='externalId', default='')

    model_config = ConfigDict(populate_by_name=True, extra='ignore', frozen=True)


class HierarchicalComponent(BaseModel):
    name: str = Field(alias='componentName')
    version: str = Field(alias='componentVersionName', default='')
    origins: list[Origin] = Field(default_factory=list)
    policy_status: str = Field(alias='policyStatus', default='')

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    @property
    def key(self) -> str:
        return component_key(self.name, self.version)

    def has_coordinate(self, coordinate: str) -> bool:
        return any(origin.vendor_coordinate == coordinate for origin in self.origins)


class HierarchicalComponentSet(BaseModel):
    total_count: int = Field(alias='totalCount', default=0)
    items: list[HierarchicalComponent] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True, extra='ignore')


def component_key(name: str, version: str) -> str:
    return f"{name}/{version}"
