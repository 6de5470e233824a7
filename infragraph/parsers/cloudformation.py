import json
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml

from infragraph.exceptions import ParseError
from infragraph.models.resource import CloudResource
from infragraph.models.template import (
    AttributeReference,
    Mapping,
    Node,
    Reference,
    Scalar,
    Sequence,
    Template,
)
from infragraph.parsers.cfn_mapping import CFN_PROPERTY_MAP, CFN_TYPE_MAP, GLUE_RESOURCES
from infragraph.parsers.common import find_sensitive_keys
from infragraph.providers import ProviderConfig, get_provider


# ------------------------------------------------------------------ CFN YAML loader
# yaml.safe_load can't handle CloudFormation short-form tags (!Ref, !Sub, !If, etc.).
# Each supported tag is registered to desugar into its long-form one-key map, so
# "!Ref Bucket" loads exactly like {"Ref": "Bucket"} in a JSON template.

class _CfnLoader(yaml.SafeLoader):
    pass


# CloudFormation reads unquoted dates as plain strings
_CfnLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != "tag:yaml.org,2002:timestamp"]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


_SHORT_FORM_TAGS = {
    "!Ref": "Ref",
    "!Condition": "Condition",
    "!GetAtt": "Fn::GetAtt",
    "!Sub": "Fn::Sub",
    "!Join": "Fn::Join",
    "!Select": "Fn::Select",
    "!Split": "Fn::Split",
    "!If": "Fn::If",
    "!Equals": "Fn::Equals",
    "!And": "Fn::And",
    "!Or": "Fn::Or",
    "!Not": "Fn::Not",
    "!FindInMap": "Fn::FindInMap",
    "!Base64": "Fn::Base64",
    "!Cidr": "Fn::Cidr",
    "!ImportValue": "Fn::ImportValue",
    "!GetAZs": "Fn::GetAZs",
}


def _make_constructor(long_form: str):
    def construct(loader: yaml.SafeLoader, node: yaml.Node) -> Dict[str, Any]:
        if isinstance(node, yaml.SequenceNode):
            return {long_form: loader.construct_sequence(node, deep=True)}
        if isinstance(node, yaml.MappingNode):
            return {long_form: loader.construct_mapping(node, deep=True)}
        value = loader.construct_scalar(node)
        if long_form == "Fn::GetAtt":
            # !GetAtt Resource.Attribute -> ["Resource", "Attribute"]
            logical_id, _, attribute = value.partition(".")
            return {long_form: [logical_id, attribute]}
        if long_form == "Fn::GetAZs":
            return {long_form: value or ""}
        return {long_form: value}
    return construct


for _tag, _long_form in _SHORT_FORM_TAGS.items():
    _CfnLoader.add_constructor(_tag, _make_constructor(_long_form))


# ------------------------------------------------------------------ parsing

def parse_template(raw: str) -> Template:
    """Parse a JSON or YAML CloudFormation template; raises ParseError on malformed input."""
    try:
        parsed = json.loads(raw)
    except ValueError:
        try:
            parsed = yaml.load(raw, Loader=_CfnLoader)
        except yaml.YAMLError as exc:
            raise ParseError(f"Template is not valid JSON or YAML: {exc}") from exc

    if not isinstance(parsed, dict):
        raise ParseError("CloudFormation template must be a JSON/YAML object")
    if not isinstance(parsed.get("Resources"), dict):
        raise ParseError('Missing or invalid "Resources" block in CloudFormation template')

    return Template.from_dict(parsed)


# ------------------------------------------------------------------ helpers

@dataclass(frozen=True)
class _GlueMerge:
    target: str       # logical id receiving the attribute
    attr: str
    value: str        # logical id whose canonical id is written


def camel_to_snake(name: str) -> str:
    """PascalCase / camelCase to snake_case; acronym runs stay together (VPCId -> vpc_id)."""
    s1 = re.sub(r"(.)([A-Z][a-z]+)", r"\1_\2", name)
    return re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", s1).lower()


def _ref_target(node: Optional[Node]) -> Optional[str]:
    if isinstance(node, Reference) and not node.is_pseudo:
        return node.logical_id
    return None


def _resolve(node: Node, logical_ids: Dict[str, str]) -> Any:
    """Turn a template node back into plain values, swapping references for canonical ids."""
    if isinstance(node, Scalar):
        return node.value
    if isinstance(node, Reference):
        if node.is_pseudo:
            return node.logical_id
        return logical_ids.get(node.logical_id, node.logical_id)
    if isinstance(node, AttributeReference):
        # the requested attribute is dropped; the edge only needs the resource
        return logical_ids.get(node.logical_id, node.logical_id)
    if isinstance(node, Sequence):
        return [_resolve(item, logical_ids) for item in node.items]
    return {k: _resolve(v, logical_ids) for k, v in node.items()}


def _walk_refs(node: Node, found: List[str]) -> None:
    if isinstance(node, Reference):
        if not node.is_pseudo:
            found.append(node.logical_id)
    elif isinstance(node, AttributeReference):
        found.append(node.logical_id)
    elif isinstance(node, Sequence):
        for item in node.items:
            _walk_refs(item, found)
    elif isinstance(node, Mapping):
        for _, v in node.items():
            _walk_refs(v, found)


def _extract_tags(props: Mapping) -> Dict[str, str]:
    """CloudFormation tags are a list of {Key, Value} maps."""
    tags: Dict[str, str] = {}
    raw = props.get("Tags")
    if not isinstance(raw, Sequence):
        return tags
    for tag in raw.items:
        if not isinstance(tag, Mapping):
            continue
        key, value = tag.get("Key"), tag.get("Value")
        if (
            isinstance(key, Scalar) and isinstance(key.value, str)
            and isinstance(value, Scalar) and isinstance(value.value, str)
        ):
            tags[key.value] = value.value
    return tags


# ------------------------------------------------------------------ extraction

def extract_template(
    template: Union[str, Template], provider: ProviderConfig
) -> Tuple[List[CloudResource], List[str]]:
    if isinstance(template, str):
        template = parse_template(template)

    resources: List[CloudResource] = []
    index: Dict[str, int] = {}
    warnings: List[str] = []

    # logical id -> canonical id, for every resource we can map
    logical_ids: Dict[str, str] = {}
    for res in template.resources:
        tf_type = CFN_TYPE_MAP.get(res.type)
        if tf_type:
            logical_ids[res.logical_id] = f"{tf_type}.{res.logical_id}"

    # Pass 1: glue resources become deferred merge instructions
    merges: List[_GlueMerge] = []
    for res in template.resources:
        glue = GLUE_RESOURCES.get(res.type)
        if glue is None:
            continue
        target = _ref_target(res.properties.get(glue.target_ref))
        value = _ref_target(res.properties.get(glue.value_ref))
        if target and value:
            merges.append(_GlueMerge(target, glue.merge_attr, value))

    # Pass 2: every mappable, non-glue resource
    for res in template.resources:
        if res.type in GLUE_RESOURCES:
            continue
        if res.logical_id not in logical_ids:
            warnings.append(f"Unsupported CloudFormation type: {res.type} ({res.logical_id})")
            continue

        tf_id = logical_ids[res.logical_id]
        prop_map = CFN_PROPERTY_MAP.get(res.type, {})
        attrs: Dict[str, Any] = {"id": tf_id}
        for key, node in res.properties.items():
            attrs[prop_map.get(key) or camel_to_snake(key)] = _resolve(node, logical_ids)

        found: List[str] = []
        _walk_refs(res.properties, found)
        found.extend(res.depends_on)
        dependencies: List[str] = []
        for logical_id in found:
            dep = logical_ids.get(logical_id)
            if dep and dep != tf_id and dep not in dependencies:
                dependencies.append(dep)

        tags = _extract_tags(res.properties)
        index[tf_id] = len(resources)
        resources.append(CloudResource(
            id=tf_id,
            type=CFN_TYPE_MAP[res.type],
            name=res.logical_id,
            display_name=tags.get("Name") or res.logical_id,
            attributes=attrs,
            dependencies=dependencies,
            provider=provider.id,
            region=provider.extract_region(attrs),
            tags=tags,
            sensitive_keys=find_sensitive_keys(attrs),
        ))

    for op in merges:
        target_id = logical_ids.get(op.target)
        value_id = logical_ids.get(op.value)
        if not target_id or not value_id or target_id not in index:
            continue
        resources[index[target_id]].attributes[op.attr] = value_id

    return resources, warnings


def parse_file(
    filepath: str, provider: Optional[ProviderConfig] = None
) -> Tuple[List[CloudResource], List[str]]:
    with open(filepath, encoding="utf-8") as fh:
        template = parse_template(fh.read())
    return extract_template(template, provider or get_provider("aws"))
