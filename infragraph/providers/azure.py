"""
Microsoft Azure: Terraform azurerm_* resources.
"""
from types import MappingProxyType
from typing import Any, Dict, Optional

from infragraph.providers.base import ContainerType, ProviderConfig, ref_pattern_for

SUPPORTED_TYPES = frozenset({
    "azurerm_resource_group",
    "azurerm_virtual_network",
    "azurerm_subnet",
    "azurerm_network_security_group",
    "azurerm_public_ip",
    "azurerm_network_interface",
    "azurerm_virtual_machine",
    "azurerm_linux_virtual_machine",
    "azurerm_windows_virtual_machine",
    "azurerm_managed_disk",
    "azurerm_storage_account",
    "azurerm_storage_container",
    "azurerm_sql_server",
    "azurerm_sql_database",
    "azurerm_lb",
    "azurerm_lb_rule",
    "azurerm_application_gateway",
    "azurerm_function_app",
    "azurerm_app_service",
    "azurerm_kubernetes_cluster",
    "azurerm_container_registry",
})

EDGE_ATTRIBUTES = (
    ("virtual_network_name",      "in vnet"),
    ("subnet_id",                 "in subnet"),
    ("network_security_group_id", "secured by"),
    ("public_ip_address_id",      "uses pip"),
    ("resource_group_name",       "in rg"),
    ("network_interface_ids",     "attached to"),
    ("load_balancer_id",          "behind lb"),
)

RENDER_CATEGORIES = {
    "azurerm_virtual_network":         "vpc",
    "azurerm_subnet":                  "subnet",
    "azurerm_network_security_group":  "security_group",
    "azurerm_public_ip":               "public_ip",
    "azurerm_virtual_machine":         "compute",
    "azurerm_linux_virtual_machine":   "compute",
    "azurerm_windows_virtual_machine": "compute",
    "azurerm_storage_account":         "storage",
    "azurerm_sql_server":              "database",
    "azurerm_sql_database":            "database",
    "azurerm_lb":                      "load_balancer",
    "azurerm_application_gateway":     "load_balancer",
    "azurerm_function_app":            "function",
}


def extract_region(attrs: Dict[str, Any]) -> Optional[str]:
    location = attrs.get("location")
    if isinstance(location, str) and location:
        return location
    return None


PROVIDER = ProviderConfig(
    id="azure",
    name="Microsoft Azure",
    short_name="Azure",
    resource_prefix="azurerm_",
    supported_types=SUPPORTED_TYPES,
    edge_attributes=EDGE_ATTRIBUTES,
    container_types=(
        ContainerType("azurerm_virtual_network", "virtual_network_name", "vpc"),
        ContainerType("azurerm_subnet", "subnet_id", "subnet"),
    ),
    render_categories=MappingProxyType(RENDER_CATEGORIES),
    extract_region=extract_region,
    ref_pattern=ref_pattern_for("azurerm_"),
)
