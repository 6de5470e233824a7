"""
Graph builder: turns extracted resources into nodes, labelled edges and a
two-level containment hierarchy, then hands the nodes to the layout engine.
"""
from typing import Any, Dict, List, Optional

from infragraph.graph.layout import apply_layout
from infragraph.models.graph import GraphEdge, GraphNode, GraphResult
from infragraph.models.plan import UNKNOWN_VALUE
from infragraph.models.resource import CloudResource
from infragraph.providers import ProviderConfig, get_provider

DEPENDS_ON_LABEL = "depends on"


def edge_id(source: str, target: str) -> str:
    return f"e-{source}-{target}"


class _Resolver:
    """Maps an attribute value to a canonical resource id, if it names one."""

    def __init__(self, resources: List[CloudResource]):
        self.canonical = {r.id for r in resources}
        self.physical: Dict[str, str] = {}
        for r in resources:
            phys = r.attributes.get("id")
            # the plan placeholder is shared by many resources and names none of them
            if isinstance(phys, str) and phys and phys != UNKNOWN_VALUE:
                self.physical.setdefault(phys, r.id)

    def __call__(self, value: Any) -> Optional[str]:
        if not isinstance(value, str) or not value:
            return None
        if value in self.physical:
            return self.physical[value]
        if value in self.canonical:
            return value
        return None


def _values(raw: Any) -> List[Any]:
    if isinstance(raw, list):
        return raw
    return [raw]


def _build_edges(
    resources: List[CloudResource], resolve: _Resolver, provider: ProviderConfig
) -> List[GraphEdge]:
    edges: List[GraphEdge] = []
    seen = set()

    def add(source: str, target: Optional[str], label: str) -> None:
        if not target or target == source:
            return
        eid = edge_id(source, target)
        if eid in seen:
            return
        seen.add(eid)
        edges.append(GraphEdge(id=eid, source=source, target=target, label=label))

    for r in resources:
        for attr, label in provider.edge_attributes:
            if attr not in r.attributes:
                continue
            for value in _values(r.attributes[attr]):
                add(r.id, resolve(value), label)
        for dep in r.dependencies:
            add(r.id, resolve(dep), DEPENDS_ON_LABEL)
    return edges


def _container_ref(
    resource: CloudResource, attr: str, container_type: str,
    resolve: _Resolver, types: Dict[str, str], allow_plural: bool = False,
) -> Optional[str]:
    candidates = [resource.attributes.get(attr)]
    if allow_plural:
        # subnet_ids = [...] places the resource in the first subnet listed
        candidates.append(resource.attributes.get(attr + "s"))
    for raw in candidates:
        if isinstance(raw, list):
            raw = raw[0] if raw else None
        target = resolve(raw)
        if target and target != resource.id and types.get(target) == container_type:
            return target
    return None


def _assign_parents(
    resources: List[CloudResource], resolve: _Resolver, provider: ProviderConfig
) -> Dict[str, str]:
    outer, inner = provider.outer_container, provider.inner_container
    types = {r.id: r.type for r in resources}
    parents: Dict[str, str] = {}
    for r in resources:
        if r.type == outer.type:
            continue
        if r.type == inner.type:
            parent = _container_ref(r, outer.parent_attr, outer.type, resolve, types)
        else:
            parent = _container_ref(
                r, inner.parent_attr, inner.type, resolve, types, allow_plural=True
            ) or _container_ref(r, outer.parent_attr, outer.type, resolve, types)
        if parent:
            parents[r.id] = parent
    return parents


def build_graph(
    resources: List[CloudResource],
    warnings: Optional[List[str]] = None,
    provider: Optional[ProviderConfig] = None,
) -> GraphResult:
    """Build the positioned graph for a resource list.

    Nodes come out in resource-list order. The first resource wins when two
    share an id.
    """
    provider = provider or get_provider("aws")

    unique: List[CloudResource] = []
    seen = set()
    for r in resources:
        if r.id in seen:
            continue
        seen.add(r.id)
        unique.append(r)

    resolve = _Resolver(unique)
    edges = _build_edges(unique, resolve, provider)
    parents = _assign_parents(unique, resolve, provider)

    nodes = [
        GraphNode(
            id=r.id,
            render_category=provider.render_category(r.type),
            resource=r,
            parent=parents.get(r.id),
        )
        for r in unique
    ]
    apply_layout(nodes, provider)

    by_id = {n.id: n for n in nodes}
    kept = [
        e for e in edges
        if e.source in by_id and e.target in by_id and by_id[e.source].parent != e.target
    ]

    return GraphResult(
        nodes=nodes,
        edges=kept,
        resources=list(unique),
        warnings=list(warnings or []),
    )
