"""
Terraform HCL (.tf) source extractor.

Source files carry no physical ids, so every resource's ``id`` attribute is its
canonical id and references like "${aws_vpc.main.id}" are rewritten to "aws_vpc.main".
"""
import re
from typing import Any, Dict, Iterable, List, Optional, Pattern, Tuple

import hcl2

from infragraph.exceptions import ParseError
from infragraph.models.resource import CloudResource
from infragraph.parsers.common import dedupe, extract_tags, find_sensitive_keys
from infragraph.providers import ProviderConfig, detect_provider_from_types

# Attribute keys that carry references to other resources
REF_ATTRS = (
    "vpc_id", "subnet_id", "subnet_ids", "security_groups",
    "vpc_security_group_ids", "nat_gateway_id", "internet_gateway_id",
    "instance_id", "allocation_id", "load_balancer_arn", "gateway_id",
)

_INTERPOLATION_RE = re.compile(r"^\$\{(.+)\}$", re.DOTALL)

ResourceTree = Dict[str, Dict[str, Dict[str, Any]]]


def _clean(val: Any) -> Any:
    """Strip the quotes and __meta__ keys that newer python-hcl2 releases keep."""
    if isinstance(val, str) and len(val) >= 2 and val[0] == '"' and val[-1] == '"':
        return val[1:-1]
    if isinstance(val, list):
        return [_clean(v) for v in val]
    if isinstance(val, dict):
        return {
            _clean(k): _clean(v) for k, v in val.items()
            if not (isinstance(k, str) and k.startswith("__") and k.endswith("__"))
        }
    return val


def _block_body(raw: Any) -> Dict[str, Any]:
    """Resource bodies may arrive wrapped as [{...}] or {"0": {...}}."""
    if isinstance(raw, list) and len(raw) == 1:
        raw = raw[0]
    if isinstance(raw, dict) and isinstance(raw.get("0"), dict):
        raw = raw["0"]
    return raw if isinstance(raw, dict) else {}


def _resource_tree(parsed: Dict[str, Any]) -> ResourceTree:
    """
    Reshape python-hcl2 output into {type: {name: body}}.
    hcl2 returns resource blocks as a list of one-key maps, and may wrap the
    instance maps in a list as well.
    """
    tree: ResourceTree = {}
    blocks = parsed.get("resource") or []
    if isinstance(blocks, dict):
        blocks = [blocks]
    for block in blocks:
        if not isinstance(block, dict):
            continue
        for resource_type, instances in block.items():
            if isinstance(instances, dict):
                instances = [instances]
            if not isinstance(instances, list):
                continue
            for instance_map in instances:
                if not isinstance(instance_map, dict):
                    continue
                for name, raw_body in instance_map.items():
                    tree.setdefault(_clean(resource_type), {})[_clean(name)] = _clean(
                        _block_body(raw_body)
                    )
    return tree


def deep_merge(target: Dict[str, Any], source: Dict[str, Any]) -> Dict[str, Any]:
    """Merge source into a copy of target: maps merge recursively, anything else overwrites."""
    result = dict(target)
    for key, src_val in source.items():
        tgt_val = result.get(key)
        if isinstance(tgt_val, dict) and isinstance(src_val, dict):
            result[key] = deep_merge(tgt_val, src_val)
        else:
            result[key] = src_val
    return result


def flatten_values(obj: Dict[str, Any]) -> Dict[str, Any]:
    """Unwrap single-element lists back to their element; recurse into wrapped maps."""
    result: Dict[str, Any] = {}
    for key, value in obj.items():
        if isinstance(value, list):
            if len(value) == 1 and isinstance(value[0], dict):
                result[key] = flatten_values(value[0])
            elif len(value) == 1 and not isinstance(value[0], list):
                result[key] = value[0]
            else:
                result[key] = [v[0] if isinstance(v, list) and len(v) == 1 else v for v in value]
        else:
            result[key] = value
    return result


def resolve_expression(expr: str, pattern: Pattern[str]) -> str:
    """Convert "${aws_vpc.main.id}" or "aws_vpc.main.id" to "aws_vpc.main"; leave anything else."""
    m = _INTERPOLATION_RE.match(expr)
    cleaned = (m.group(1) if m else expr).strip()
    match = pattern.match(cleaned)
    if match:
        return f"{match.group(1)}.{match.group(2)}"
    return expr


def _ref_attrs(provider: ProviderConfig) -> List[str]:
    attrs = list(REF_ATTRS)
    attrs.extend(attr for attr, _ in provider.edge_attributes)
    for container in provider.container_types:
        attrs.append(container.parent_attr)
    attrs.append(provider.inner_container.parent_attr + "s")
    return dedupe(attrs)


def _resolve_refs(attrs: Dict[str, Any], keys: Iterable[str], pattern: Pattern[str]) -> None:
    for key in keys:
        val = attrs.get(key)
        if isinstance(val, str):
            attrs[key] = resolve_expression(val, pattern)
        elif isinstance(val, list):
            attrs[key] = [resolve_expression(v, pattern) if isinstance(v, str) else v for v in val]


def _extract_dependencies(
    attrs: Dict[str, Any], keys: Iterable[str], depends_on: Any, provider: ProviderConfig
) -> List[str]:
    canonical = re.compile(r"^%s\w+\.\w+$" % re.escape(provider.resource_prefix))
    candidates: List[str] = []
    for key in keys:
        val = attrs.get(key)
        if isinstance(val, str):
            candidates.append(val)
        elif isinstance(val, list):
            candidates.extend(v for v in val if isinstance(v, str))

    if isinstance(depends_on, str):
        depends_on = [depends_on]
    if isinstance(depends_on, list):
        candidates.extend(
            resolve_expression(d, provider.ref_pattern) for d in depends_on if isinstance(d, str)
        )
    return dedupe(c for c in candidates if canonical.match(c))


def parse_sources(files: Dict[str, str]) -> ResourceTree:
    """Parse and deep-merge every file's resource blocks, in the order given."""
    tree: ResourceTree = {}
    for filename, content in files.items():
        try:
            parsed = hcl2.loads(content)
        except Exception as exc:
            raise ParseError(f"Failed to parse HCL ({filename}): {exc}") from exc
        if not isinstance(parsed, dict):
            raise ParseError(f"Failed to parse HCL ({filename}): unexpected document shape")
        tree = deep_merge(tree, _resource_tree(parsed))
    return tree


def extract_tree(tree: ResourceTree, provider: ProviderConfig) -> Tuple[List[CloudResource], List[str]]:
    resources: List[CloudResource] = []
    warnings: List[str] = []
    ref_keys = _ref_attrs(provider)

    for resource_type, instances in tree.items():
        for resource_name, raw_attrs in instances.items():
            tf_id = f"{resource_type}.{resource_name}"
            attrs = flatten_values(raw_attrs)
            depends_on = attrs.pop("depends_on", None)

            # no physical id exists before apply
            attrs["id"] = tf_id
            _resolve_refs(attrs, ref_keys, provider.ref_pattern)

            tags = extract_tags(attrs)
            name_attr = attrs.get("name")
            display_name = tags.get("Name") or (
                name_attr if isinstance(name_attr, str) and name_attr else resource_name
            )

            resources.append(CloudResource(
                id=tf_id,
                type=resource_type,
                name=resource_name,
                display_name=display_name,
                attributes=attrs,
                dependencies=[
                    d for d in _extract_dependencies(attrs, ref_keys, depends_on, provider)
                    if d != tf_id
                ],
                provider=provider.id,
                region=provider.extract_region(attrs),
                tags=tags,
                sensitive_keys=find_sensitive_keys(attrs),
            ))

    return resources, warnings


def extract_source_declaration(
    files: Dict[str, str], provider: ProviderConfig
) -> Tuple[List[CloudResource], List[str]]:
    return extract_tree(parse_sources(files), provider)


def parse_files(
    filepaths: List[str], provider: Optional[ProviderConfig] = None
) -> Tuple[List[CloudResource], List[str]]:
    """Read .tf files from disk as one configuration; the provider is detected when not given."""
    files: Dict[str, str] = {}
    for fp in filepaths:
        with open(fp, encoding="utf-8") as fh:
            files[fp] = fh.read()
    tree = parse_sources(files)
    return extract_tree(tree, provider or detect_provider_from_types(tree))
