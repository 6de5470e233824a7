"""
Terraform deployed-state (.tfstate) extractor.
"""
from typing import Any, Dict, List, Optional, Tuple

from infragraph.exceptions import ParseError
from infragraph.models.resource import CloudResource
from infragraph.parsers.common import (
    address_type,
    dedupe,
    extract_tags,
    find_sensitive_keys,
    load_json_object,
)
from infragraph.providers import ProviderConfig, detect_provider


def parse_tfstate(raw: str) -> Dict[str, Any]:
    """Parse raw .tfstate text, failing fast on anything that is not a state document."""
    tfstate = load_json_object(raw, "tfstate")
    if tfstate.get("version") is None:
        raise ParseError('Missing "version" field: is this a valid tfstate file?')
    if not isinstance(tfstate.get("resources"), list):
        raise ParseError('Missing or invalid "resources" array in tfstate')
    return tfstate


def _declared_sensitive(instance: Dict[str, Any]) -> List[str]:
    """
    Top-level attribute names from an instance's sensitive_attributes paths.
    Each path is a list of steps like {"type": "get_attr", "value": "password"}.
    """
    keys = []
    for path in instance.get("sensitive_attributes") or []:
        step = path[0] if isinstance(path, list) and path else path
        if isinstance(step, dict) and step.get("type") == "get_attr":
            value = step.get("value")
            if isinstance(value, str):
                keys.append(value)
    return dedupe(keys)


def _display_name(rtype: str, name: str, attrs: Dict[str, Any], tags: Dict[str, str]) -> str:
    # Name tag -> name attribute -> physical id -> type.name
    if tags.get("Name"):
        return tags["Name"]
    for key in ("name", "id"):
        val = attrs.get(key)
        if isinstance(val, str) and val:
            return val
    return f"{rtype}.{name}"


def extract_deployed_state(
    tfstate: Dict[str, Any], provider: ProviderConfig
) -> Tuple[List[CloudResource], List[str]]:
    if not isinstance(tfstate, dict):
        raise ParseError("tfstate must be a JSON object")
    if not isinstance(tfstate.get("resources"), list):
        raise ParseError('Missing or invalid "resources" array in tfstate')

    resources: List[CloudResource] = []
    warnings: List[str] = []

    for tf_resource in tfstate["resources"]:
        if not isinstance(tf_resource, dict):
            continue
        # data sources are read-only lookups, not infrastructure
        if tf_resource.get("mode") != "managed":
            continue
        rtype = tf_resource.get("type")
        name = tf_resource.get("name")
        instances = tf_resource.get("instances")
        if not isinstance(rtype, str) or not isinstance(name, str) or not isinstance(instances, list):
            continue

        base_id = f"{rtype}.{name}"
        module = tf_resource.get("module")
        if isinstance(module, str) and module:
            base_id = f"{module}.{base_id}"

        for i, instance in enumerate(instances):
            if not isinstance(instance, dict):
                continue
            suffix = f"[{i}]" if len(instances) > 1 else ""
            resource_id = base_id + suffix

            attrs = instance.get("attributes")
            attrs = dict(attrs) if isinstance(attrs, dict) else {}
            tags = extract_tags(attrs)
            display_name = _display_name(rtype, name, attrs, tags)
            if attrs.get("id") in (None, ""):
                attrs["id"] = resource_id

            dependencies = dedupe(
                dep for dep in instance.get("dependencies") or []
                if isinstance(dep, str) and provider.supports(address_type(dep))
            )

            resources.append(CloudResource(
                id=resource_id,
                type=rtype,
                name=name,
                display_name=display_name,
                attributes=attrs,
                dependencies=dependencies,
                provider=provider.id,
                region=provider.extract_region(attrs),
                tags=tags,
                sensitive_keys=find_sensitive_keys(attrs, _declared_sensitive(instance)),
            ))

    return resources, warnings


def parse_file(
    filepath: str, provider: Optional[ProviderConfig] = None
) -> Tuple[List[CloudResource], List[str]]:
    """Read a .tfstate file from disk; the provider is detected when not given."""
    with open(filepath, encoding="utf-8") as fh:
        tfstate = parse_tfstate(fh.read())
    return extract_deployed_state(tfstate, provider or detect_provider(tfstate))
