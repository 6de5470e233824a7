from dataclasses import dataclass, field
from typing import Dict, List, Optional

from infragraph.models.resource import CloudResource


@dataclass
class Position:
    x: float = 0
    y: float = 0


@dataclass
class Size:
    width: float
    height: float


@dataclass
class GraphNode:
    id: str
    render_category: str
    resource: CloudResource
    position: Position = field(default_factory=Position)
    parent: Optional[str] = None
    size: Optional[Size] = None      # set on container nodes only

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "renderCategory": self.render_category,
            "position": {"x": self.position.x, "y": self.position.y},
        }
        if self.parent is not None:
            data["parent"] = self.parent
        if self.size is not None:
            data["size"] = {"width": self.size.width, "height": self.size.height}
        data["resource"] = self.resource.to_dict()
        return data


@dataclass
class GraphEdge:
    id: str
    source: str
    target: str
    label: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "label": self.label,
        }


@dataclass
class GraphResult:
    nodes: List[GraphNode] = field(default_factory=list)
    edges: List[GraphEdge] = field(default_factory=list)
    resources: List[CloudResource] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    actions: Dict[str, str] = field(default_factory=dict)   # plan input only

    def node(self, node_id: str) -> Optional[GraphNode]:
        return next((n for n in self.nodes if n.id == node_id), None)

    def to_dict(self) -> dict:
        data = {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
            "resources": [r.to_dict() for r in self.resources],
            "warnings": list(self.warnings),
        }
        if self.actions:
            data["actions"] = dict(self.actions)
        return data
