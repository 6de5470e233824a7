"""
Provider configuration shared by every extractor, the graph builder and the layout engine.
"""
import dataclasses
import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Dict, FrozenSet, Mapping, Optional, Pattern, Tuple


@dataclass(frozen=True)
class ContainerType:
    type: str             # resource type that acts as the container, e.g. "aws_vpc"
    parent_attr: str      # attribute on a child naming this container, e.g. "vpc_id"
    render_category: str


@dataclass(frozen=True)
class ProviderConfig:
    id: str
    name: str
    short_name: str
    resource_prefix: str
    supported_types: FrozenSet[str]
    edge_attributes: Tuple[Tuple[str, str], ...]
    container_types: Tuple[ContainerType, ContainerType]     # (outer, inner)
    render_categories: Mapping[str, str]
    extract_region: Callable[[Dict[str, Any]], Optional[str]]
    ref_pattern: Pattern[str]

    @property
    def outer_container(self) -> ContainerType:
        return self.container_types[0]

    @property
    def inner_container(self) -> ContainerType:
        return self.container_types[1]

    @property
    def container_type_names(self) -> FrozenSet[str]:
        return frozenset(c.type for c in self.container_types)

    def render_category(self, resource_type: str) -> str:
        return self.render_categories.get(resource_type, "generic")

    def supports(self, resource_type: str) -> bool:
        return resource_type in self.supported_types

    def with_overrides(
        self,
        supported_types=(),
        edge_attributes=(),
        render_categories: Optional[Dict[str, str]] = None,
    ) -> "ProviderConfig":
        """Return a new config extended with extra types, edge attributes and categories."""
        known_attrs = {attr for attr, _ in self.edge_attributes}
        extra_edges = tuple(
            (attr, label) for attr, label in edge_attributes if attr not in known_attrs
        )
        categories = dict(self.render_categories)
        categories.update(render_categories or {})
        return dataclasses.replace(
            self,
            supported_types=self.supported_types | frozenset(supported_types),
            edge_attributes=self.edge_attributes + extra_edges,
            render_categories=MappingProxyType(categories),
        )


def ref_pattern_for(prefix: str) -> Pattern[str]:
    """Pattern matching a Terraform reference such as ``aws_vpc.main`` or ``aws_vpc.main.id``."""
    return re.compile(r"^(%s\w+)\.(\w+)(?:\.\w+)?$" % re.escape(prefix))
