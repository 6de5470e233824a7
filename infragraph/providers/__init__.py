from typing import Dict, Iterable

from infragraph.exceptions import UnknownProviderError
from infragraph.providers import aws, azure, gcp
from infragraph.providers.base import ContainerType, ProviderConfig

PROVIDERS: Dict[str, ProviderConfig] = {
    "aws": aws.PROVIDER,
    "azure": azure.PROVIDER,
    "gcp": gcp.PROVIDER,
}

DEFAULT_PROVIDER = "aws"


def get_provider(provider_id: str) -> ProviderConfig:
    try:
        return PROVIDERS[provider_id]
    except KeyError:
        raise UnknownProviderError(
            f"Unknown provider '{provider_id}' (expected one of: {', '.join(PROVIDERS)})"
        ) from None


def detect_provider_from_types(resource_types: Iterable[str]) -> ProviderConfig:
    """Pick the provider whose type prefix matches the most resource types.

    Ties keep registry order; no match falls back to AWS.
    """
    counts = {pid: 0 for pid in PROVIDERS}
    for rtype in resource_types:
        if not isinstance(rtype, str):
            continue
        for pid, cfg in PROVIDERS.items():
            if rtype.startswith(cfg.resource_prefix):
                counts[pid] += 1
                break

    best, best_count = DEFAULT_PROVIDER, 0
    for pid, count in counts.items():
        if count > best_count:
            best, best_count = pid, count
    return PROVIDERS[best]


def detect_provider(tfstate: dict) -> ProviderConfig:
    """Detect the provider of a deployed-state document from its managed resource types."""
    types = [
        r.get("type", "")
        for r in tfstate.get("resources") or []
        if isinstance(r, dict) and r.get("mode") == "managed"
    ]
    return detect_provider_from_types(types)


__all__ = [
    "ContainerType",
    "PROVIDERS",
    "ProviderConfig",
    "detect_provider",
    "detect_provider_from_types",
    "get_provider",
]
