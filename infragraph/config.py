"""
Optional project configuration (infragraph.yaml).

provider: aws
supported_types: [aws_kinesis_stream]
edge_attributes:
  - {attribute: role_arn, label: assumes}
render_categories:
  aws_kinesis_stream: stream
"""
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import yaml

from infragraph.exceptions import InfragraphError
from infragraph.providers import ProviderConfig

CONFIG_FILE = "infragraph.yaml"


class ConfigError(InfragraphError):
    pass


@dataclass
class ProjectConfig:
    provider: Optional[str] = None
    supported_types: List[str] = field(default_factory=list)
    edge_attributes: List[Tuple[str, str]] = field(default_factory=list)
    render_categories: Dict[str, str] = field(default_factory=dict)

    def apply(self, provider: ProviderConfig) -> ProviderConfig:
        """Return the provider extended with this project's additions."""
        if not (self.supported_types or self.edge_attributes or self.render_categories):
            return provider
        return provider.with_overrides(
            supported_types=self.supported_types,
            edge_attributes=self.edge_attributes,
            render_categories=self.render_categories,
        )


def _str_list(raw, key: str) -> List[str]:
    if raw is None:
        return []
    if not isinstance(raw, list) or not all(isinstance(v, str) for v in raw):
        raise ConfigError(f"'{key}' must be a list of strings")
    return list(raw)


def parse_config(data) -> ProjectConfig:
    if data is None:
        return ProjectConfig()
    if not isinstance(data, dict):
        raise ConfigError("configuration must be a mapping")

    provider = data.get("provider")
    if provider is not None and not isinstance(provider, str):
        raise ConfigError("'provider' must be a string")

    raw_edges = data.get("edge_attributes") or []
    if not isinstance(raw_edges, list):
        raise ConfigError("'edge_attributes' must be a list")
    edges: List[Tuple[str, str]] = []
    for entry in raw_edges:
        if not isinstance(entry, dict) or not isinstance(entry.get("attribute"), str):
            raise ConfigError("each edge_attributes entry needs an 'attribute'")
        edges.append((entry["attribute"], str(entry.get("label") or entry["attribute"])))

    categories = data.get("render_categories") or {}
    if not isinstance(categories, dict):
        raise ConfigError("'render_categories' must be a mapping")

    return ProjectConfig(
        provider=provider,
        supported_types=_str_list(data.get("supported_types"), "supported_types"),
        edge_attributes=edges,
        render_categories={str(k): str(v) for k, v in categories.items()},
    )


def load_config(path: Optional[str] = None) -> Optional[ProjectConfig]:
    """Load the config at path, or ./infragraph.yaml when present. None if there is none."""
    if path is None:
        if not os.path.exists(CONFIG_FILE):
            return None
        path = CONFIG_FILE
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"could not read {path}: {exc}") from exc
    return parse_config(data)
