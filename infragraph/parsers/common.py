"""
Helpers shared by the Terraform-family extractors (state, plan, HCL).
"""
import json
from typing import Any, Dict, Iterable, List

from infragraph.exceptions import ParseError

# Attribute-name fragments that usually hold secret material
SENSITIVE_KEY_FRAGMENTS = (
    "password",
    "secret",
    "token",
    "private_key",
    "access_key",
    "api_key",
    "credential",
    "connection_string",
)


def load_json_object(raw: str, what: str) -> Dict[str, Any]:
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        raise ParseError("File is not valid JSON") from None
    if not isinstance(data, dict):
        raise ParseError(f"{what} must be a JSON object")
    return data


def extract_tags(attrs: Dict[str, Any]) -> Dict[str, str]:
    raw = attrs.get("tags") or attrs.get("tags_all")
    if not isinstance(raw, dict):
        return {}
    return {str(k): str(v) for k, v in raw.items()}


def find_sensitive_keys(attrs: Dict[str, Any], declared: Iterable[str] = ()) -> List[str]:
    """Attribute keys declared sensitive, then keys whose name looks secret."""
    keys: List[str] = []
    for key in declared:
        if key not in keys:
            keys.append(key)
    for key in attrs:
        lowered = key.lower()
        if key not in keys and any(frag in lowered for frag in SENSITIVE_KEY_FRAGMENTS):
            keys.append(key)
    return keys


def address_type(address: str) -> str:
    """Resource type of a Terraform address, ignoring module and data prefixes.

    "module.net.aws_vpc.main" -> "aws_vpc"; "aws_instance.web[0]" -> "aws_instance"
    """
    parts = address.split(".")
    while len(parts) >= 2 and parts[0] in ("module", "data"):
        parts = parts[2:] if parts[0] == "module" else parts[1:]
    return parts[0] if parts else ""


def dedupe(values: Iterable[str]) -> List[str]:
    seen = set()
    out = []
    for v in values:
        if v not in seen:
            seen.add(v)
            out.append(v)
    return out
