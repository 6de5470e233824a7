"""
Markdown + Mermaid infrastructure report generator.
"""
import re
from datetime import datetime, timezone
from typing import Dict, List

from jinja2 import Environment

from infragraph import __version__
from infragraph.models.graph import GraphNode, GraphResult

_ACTION_ICON = {
    "create": "+",
    "update": "~",
    "delete": "-",
    "replace": "-/+",
    "read": "<=",
    "no-op": " ",
}

_ACTION_STYLE = {
    "create": "fill:#d4f7d4,stroke:#2e7d32",
    "update": "fill:#fff4c2,stroke:#b08900",
    "delete": "fill:#ffd6d6,stroke:#c62828",
    "replace": "fill:#ffe0b2,stroke:#e65100",
}


def _sanitize_node_id(name: str) -> str:
    return re.sub(r"[^a-zA-Z0-9_]", "_", name)


def _label(node: GraphNode) -> str:
    text = node.resource.display_name or node.resource.name
    return text.replace('"', "'")


def _node_shape(node: GraphNode) -> str:
    """Return a Mermaid node definition string (without ID)."""
    label = _label(node)
    category = node.render_category
    if category in ("database", "storage"):
        return f'[("{label}")]'
    if category == "security_group":
        return f'{{"{label}"}}'
    if category in ("igw", "public_ip"):
        return f'(("{label}"))'
    if category == "function":
        return f'(["{label}"])'
    return f'["{label}"]'


def _build_mermaid(result: GraphResult) -> str:
    children: Dict[str, List[GraphNode]] = {}
    for n in result.nodes:
        if n.parent is not None:
            children.setdefault(n.parent, []).append(n)

    lines = ["flowchart LR"]

    def emit(node: GraphNode, depth: int) -> None:
        indent = "    " * depth
        node_id = _sanitize_node_id(node.id)
        kids = children.get(node.id)
        if node.size is None and not kids:
            lines.append(f"{indent}{node_id}{_node_shape(node)}")
            return
        lines.append(f'{indent}subgraph {node_id}["{_label(node)}"]')
        for kid in kids or []:
            emit(kid, depth + 1)
        lines.append(f"{indent}end")

    for node in result.nodes:
        if node.parent is None:
            emit(node, 1)

    for e in result.edges:
        lines.append(
            f"    {_sanitize_node_id(e.source)} -->|{e.label}| {_sanitize_node_id(e.target)}"
        )

    for node_id, action in result.actions.items():
        style = _ACTION_STYLE.get(str(action))
        if style and result.node(node_id) is not None:
            lines.append(f"    style {_sanitize_node_id(node_id)} {style}")

    return "\n".join(lines)


_TEMPLATE = """\
# Infrastructure Graph Report

**Generated:** {{ generated }}
**Source:** {{ source }}
**Provider:** {{ provider }}
**Tool:** infragraph v{{ version }}

---

## Summary

**{{ resource_count }} resources**, **{{ edge_count }} connections**.
{% for category, count in categories %}
- **{{ category }}**: {{ count }}{% endfor %}

---

## Resource Inventory

| # | Resource | Type | Name | Parent | Region |
|---|----------|------|------|--------|--------|
{% for n in nodes %}| {{ loop.index }} | `{{ n.id }}` | `{{ n.resource.type }}` | {{ n.resource.display_name }} | {% if n.parent %}`{{ n.parent }}`{% endif %} | {{ n.resource.region or "" }} |
{% endfor %}
{% if actions %}
---

## Planned Changes

| Action | Resource |
|--------|----------|
{% for address, action in actions %}| `{{ action_icon.get(action, "") }}` {{ action }} | `{{ address }}` |
{% endfor %}
{% endif %}
{% if warnings %}
---

## Warnings

{% for w in warnings %}- {{ w }}
{% endfor %}
{% endif %}
---

## Resource Graph

```mermaid
{{ mermaid }}
```
"""


def build_report(result: GraphResult, source_path: str, provider_name: str) -> str:
    categories: Dict[str, int] = {}
    for n in result.nodes:
        categories[n.render_category] = categories.get(n.render_category, 0) + 1

    env = Environment(autoescape=False)
    template = env.from_string(_TEMPLATE)

    return template.render(
        generated=datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC"),
        source=source_path,
        provider=provider_name,
        version=__version__,
        resource_count=len(result.nodes),
        edge_count=len(result.edges),
        categories=sorted(categories.items()),
        nodes=result.nodes,
        actions=[(address, str(action)) for address, action in result.actions.items()],
        action_icon=_ACTION_ICON,
        warnings=result.warnings,
        mermaid=_build_mermaid(result),
    )
