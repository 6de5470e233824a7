import json
import os

import yaml


# Loader that tolerates CloudFormation-specific YAML tags (!Ref, !Sub, etc.)
# without raising an error, so detect_format can sniff CFN templates.
class _TagTolerantLoader(yaml.SafeLoader):
    pass


_TagTolerantLoader.add_multi_constructor(
    "!",
    lambda loader, suffix, node: loader.construct_yaml_str(node)
    if isinstance(node, yaml.ScalarNode) else None,
)

FORMATS = ("tfstate", "plan", "hcl", "cloudformation")


def _looks_like_cfn(doc) -> bool:
    if not isinstance(doc, dict):
        return False
    if "AWSTemplateFormatVersion" in doc:
        return True
    resources = doc.get("Resources")
    return isinstance(resources, dict) and any(
        isinstance(v, dict) and str(v.get("Type", "")).startswith("AWS::")
        for v in resources.values()
    )


def detect_json(data) -> str:
    """Classify an already-decoded JSON document."""
    if not isinstance(data, dict):
        return "unknown"
    if isinstance(data.get("resource_changes"), list):
        return "plan"
    if "version" in data and isinstance(data.get("resources"), list):
        return "tfstate"
    if _looks_like_cfn(data):
        return "cloudformation"
    return "unknown"


def detect_format(filepath: str) -> str:
    """
    Return 'tfstate', 'plan', 'hcl', 'cloudformation', or 'unknown'.
    """
    _, ext = os.path.splitext(filepath.lower())

    if ext == ".tf":
        return "hcl"

    if ext == ".tfstate":
        return "tfstate"

    if ext in (".json", ".template"):
        try:
            with open(filepath, encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError):
            if ext != ".template":
                return "unknown"
        else:
            fmt = detect_json(data)
            if fmt != "unknown" or ext != ".template":
                return fmt

    if ext in (".yaml", ".yml", ".template"):
        try:
            with open(filepath, encoding="utf-8") as fh:
                doc = yaml.load(fh, Loader=_TagTolerantLoader)
        except (OSError, ValueError, yaml.YAMLError):
            return "unknown"
        if _looks_like_cfn(doc):
            return "cloudformation"

    return "unknown"
