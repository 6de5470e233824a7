"""
Terraform plan extractor: reads `terraform show -json <planfile>` output.
"""
import re
from typing import Any, Dict, List, Optional, Tuple

from infragraph.exceptions import ParseError
from infragraph.models.plan import UNKNOWN_VALUE, PlanAction
from infragraph.models.resource import CloudResource
from infragraph.parsers.common import (
    dedupe,
    extract_tags,
    find_sensitive_keys,
    load_json_object,
)
from infragraph.providers import ProviderConfig, detect_provider_from_types

_INDEX_RE = re.compile(r"\[[^\]]*\]$")


def parse_plan(raw: str) -> Dict[str, Any]:
    plan = load_json_object(raw, "Terraform plan")
    if not isinstance(plan.get("resource_changes"), list):
        raise ParseError('Missing or invalid "resource_changes" array in plan')
    return plan


def _collect_references(expr: Any, out: List[str]) -> None:
    """Walk a configuration expression tree and gather every "references" entry."""
    if isinstance(expr, dict):
        refs = expr.get("references")
        if isinstance(refs, list):
            out.extend(r for r in refs if isinstance(r, str))
        for key, val in expr.items():
            if key != "references":
                _collect_references(val, out)
    elif isinstance(expr, list):
        for item in expr:
            _collect_references(item, out)


def _configured_dependencies(plan: Dict[str, Any], provider: ProviderConfig) -> Dict[str, List[str]]:
    """
    Map configuration address -> referenced resource addresses, taken from the
    root module's expressions and depends_on. References such as
    "aws_vpc.main.id" are reduced to "aws_vpc.main"; var/local/data refs are dropped.
    """
    root = (plan.get("configuration") or {}).get("root_module") or {}
    deps: Dict[str, List[str]] = {}
    for res in root.get("resources") or []:
        if not isinstance(res, dict) or res.get("mode") == "data":
            continue
        address = res.get("address")
        if not isinstance(address, str):
            continue
        raw_refs: List[str] = []
        _collect_references(res.get("expressions") or {}, raw_refs)
        raw_refs.extend(d for d in res.get("depends_on") or [] if isinstance(d, str))

        resolved = []
        for ref in raw_refs:
            match = provider.ref_pattern.match(ref)
            if match and provider.supports(match.group(1)):
                resolved.append(f"{match.group(1)}.{match.group(2)}")
        deps[address] = dedupe(resolved)
    return deps


def _true_keys(flags: Any) -> List[str]:
    if not isinstance(flags, dict):
        return []
    return [k for k, v in flags.items() if v is True]


def extract_planned_change(
    plan: Dict[str, Any], provider: ProviderConfig
) -> Tuple[List[CloudResource], Dict[str, PlanAction], List[str]]:
    if not isinstance(plan, dict):
        raise ParseError("Terraform plan must be a JSON object")
    if not isinstance(plan.get("resource_changes"), list):
        raise ParseError('Missing or invalid "resource_changes" array in plan')

    resources: List[CloudResource] = []
    actions: Dict[str, PlanAction] = {}
    warnings: List[str] = []
    configured = _configured_dependencies(plan, provider)

    for rc in plan["resource_changes"]:
        if not isinstance(rc, dict) or rc.get("mode") == "data":
            continue
        address = rc.get("address")
        rtype = rc.get("type")
        change = rc.get("change")
        if not isinstance(address, str) or not isinstance(rtype, str) or not isinstance(change, dict):
            continue
        name = rc.get("name") if isinstance(rc.get("name"), str) else address

        action = PlanAction.from_actions(change.get("actions") or [])
        deleting = action == PlanAction.DELETE
        values = change.get("before") if deleting else change.get("after")
        values = values if isinstance(values, dict) else {}

        tags = extract_tags(values)
        attrs = {k: v for k, v in values.items() if k not in ("tags", "tags_all")}
        for key in _true_keys(change.get("after_unknown")):
            attrs[key] = UNKNOWN_VALUE
        if "id" not in attrs:
            attrs["id"] = address

        declared = _true_keys(change.get("before_sensitive" if deleting else "after_sensitive"))

        if rtype not in provider.render_categories:
            warnings.append(f"Unmapped type: {rtype} ({address})")

        resources.append(CloudResource(
            id=address,
            type=rtype,
            name=name,
            display_name=tags.get("Name") or name,
            attributes=attrs,
            dependencies=[
                d for d in configured.get(_INDEX_RE.sub("", address), []) if d != address
            ],
            provider=provider.id,
            region=provider.extract_region(attrs),
            tags=tags,
            sensitive_keys=find_sensitive_keys(attrs, declared),
        ))
        actions[address] = action

    return resources, actions, warnings


def parse_file(
    filepath: str, provider: Optional[ProviderConfig] = None
) -> Tuple[List[CloudResource], Dict[str, PlanAction], List[str]]:
    with open(filepath, encoding="utf-8") as fh:
        plan = parse_plan(fh.read())
    if provider is None:
        provider = detect_provider_from_types(
            rc.get("type", "") for rc in plan["resource_changes"] if isinstance(rc, dict)
        )
    return extract_planned_change(plan, provider)
