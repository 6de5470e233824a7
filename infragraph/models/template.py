"""
Normalized CloudFormation template tree.

A parsed template is loosely typed (dicts, lists and scalars, with intrinsic
functions encoded as one-key maps). ``normalize`` turns it once into a closed
set of node variants so the extractor can match on node kind instead of
probing raw dicts:

  Scalar               any non-container value
  Sequence             list
  Mapping              dict (key order preserved)
  Reference            {"Ref": "LogicalId"}
  AttributeReference   {"Fn::GetAtt": ["LogicalId", "Attribute"]}
"""
from dataclasses import dataclass
from typing import Any, Iterator, Optional, Tuple, Union

# Ref targets that name stack/account context rather than a resource
PSEUDO_PARAMETERS = frozenset({
    "AWS::AccountId",
    "AWS::NotificationARNs",
    "AWS::NoValue",
    "AWS::Partition",
    "AWS::Region",
    "AWS::StackId",
    "AWS::StackName",
    "AWS::URLSuffix",
})


@dataclass(frozen=True)
class Scalar:
    value: Any


@dataclass(frozen=True)
class Sequence:
    items: Tuple["Node", ...] = ()


@dataclass(frozen=True)
class Mapping:
    entries: Tuple[Tuple[str, "Node"], ...] = ()

    def get(self, key: str, default: Optional["Node"] = None) -> Optional["Node"]:
        for k, v in self.entries:
            if k == key:
                return v
        return default

    def items(self) -> Iterator[Tuple[str, "Node"]]:
        return iter(self.entries)


@dataclass(frozen=True)
class Reference:
    logical_id: str

    @property
    def is_pseudo(self) -> bool:
        return self.logical_id in PSEUDO_PARAMETERS


@dataclass(frozen=True)
class AttributeReference:
    logical_id: str
    attribute: str


Node = Union[Scalar, Sequence, Mapping, Reference, AttributeReference]


def normalize(value: Any) -> Node:
    if isinstance(value, dict):
        if len(value) == 1 and isinstance(value.get("Ref"), str):
            return Reference(value["Ref"])
        if len(value) == 1 and "Fn::GetAtt" in value:
            att = value["Fn::GetAtt"]
            if isinstance(att, str) and "." in att:
                att = att.split(".", 1)
            if isinstance(att, list) and len(att) == 2 and isinstance(att[0], str):
                attribute = att[1] if isinstance(att[1], str) else ""
                return AttributeReference(att[0], attribute)
        return Mapping(tuple((str(k), normalize(v)) for k, v in value.items()))
    if isinstance(value, list):
        return Sequence(tuple(normalize(v) for v in value))
    return Scalar(value)


@dataclass(frozen=True)
class TemplateResource:
    logical_id: str
    type: str
    properties: Mapping = Mapping()
    depends_on: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Template:
    resources: Tuple[TemplateResource, ...] = ()
    format_version: Optional[str] = None
    description: Optional[str] = None

    def __len__(self) -> int:
        return len(self.resources)

    @classmethod
    def from_dict(cls, data: dict) -> "Template":
        """Build a Template from a loaded document whose Resources block is a dict.

        Entries that are not maps are skipped.
        """
        resources = []
        for logical_id, definition in data["Resources"].items():
            if not isinstance(definition, dict):
                continue
            props = definition.get("Properties") or {}
            if not isinstance(props, dict):
                props = {}
            depends_on = definition.get("DependsOn") or ()
            if isinstance(depends_on, str):
                depends_on = (depends_on,)
            resources.append(TemplateResource(
                logical_id=str(logical_id),
                type=str(definition.get("Type", "")),
                properties=Mapping(tuple((str(k), normalize(v)) for k, v in props.items())),
                depends_on=tuple(d for d in depends_on if isinstance(d, str)),
            ))
        version = data.get("AWSTemplateFormatVersion")
        return cls(
            resources=tuple(resources),
            format_version=str(version) if version is not None else None,
            description=data.get("Description"),
        )
