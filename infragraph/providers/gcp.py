"""
Google Cloud Platform: Terraform google_* resources.
"""
from types import MappingProxyType
from typing import Any, Dict, Optional

from infragraph.providers.base import ContainerType, ProviderConfig, ref_pattern_for

SUPPORTED_TYPES = frozenset({
    "google_compute_network",
    "google_compute_subnetwork",
    "google_compute_firewall",
    "google_compute_instance",
    "google_compute_address",
    "google_compute_global_address",
    "google_compute_forwarding_rule",
    "google_compute_target_pool",
    "google_compute_instance_group",
    "google_storage_bucket",
    "google_sql_database_instance",
    "google_sql_database",
    "google_cloudfunctions_function",
    "google_cloud_run_service",
    "google_container_cluster",
    "google_container_node_pool",
    "google_pubsub_topic",
    "google_pubsub_subscription",
})

EDGE_ATTRIBUTES = (
    ("network",           "in network"),
    ("subnetwork",        "in subnet"),
    ("network_interface", "attached to"),
    ("target_pool",       "behind pool"),
    ("firewall_policy",   "secured by"),
)

RENDER_CATEGORIES = {
    "google_compute_network":         "vpc",
    "google_compute_subnetwork":      "subnet",
    "google_compute_firewall":        "security_group",
    "google_compute_instance":        "compute",
    "google_compute_address":         "public_ip",
    "google_compute_global_address":  "public_ip",
    "google_compute_forwarding_rule": "load_balancer",
    "google_storage_bucket":          "storage",
    "google_sql_database_instance":   "database",
    "google_cloudfunctions_function": "function",
    "google_cloud_run_service":       "function",
}


def extract_region(attrs: Dict[str, Any]) -> Optional[str]:
    region = attrs.get("region") or attrs.get("zone")
    if isinstance(region, str) and region:
        return region
    return None


PROVIDER = ProviderConfig(
    id="gcp",
    name="Google Cloud Platform",
    short_name="GCP",
    resource_prefix="google_",
    supported_types=SUPPORTED_TYPES,
    edge_attributes=EDGE_ATTRIBUTES,
    container_types=(
        ContainerType("google_compute_network", "network", "vpc"),
        ContainerType("google_compute_subnetwork", "subnetwork", "subnet"),
    ),
    render_categories=MappingProxyType(RENDER_CATEGORIES),
    extract_region=extract_region,
    ref_pattern=ref_pattern_for("google_"),
)
