"""
Amazon Web Services: Terraform aws_* resources (CloudFormation templates map onto these types).
"""
from types import MappingProxyType
from typing import Any, Dict, Optional

from infragraph.providers.base import ContainerType, ProviderConfig, ref_pattern_for

SUPPORTED_TYPES = frozenset({
    "aws_vpc",
    "aws_subnet",
    "aws_internet_gateway",
    "aws_nat_gateway",
    "aws_route_table",
    "aws_route_table_association",
    "aws_security_group",
    "aws_instance",
    "aws_db_instance",
    "aws_lb",
    "aws_alb",
    "aws_lb_target_group",
    "aws_lb_listener",
    "aws_eip",
    "aws_s3_bucket",
    "aws_lambda_function",
    "aws_ecs_cluster",
    "aws_ecs_service",
    "aws_ecs_task_definition",
    "aws_eks_cluster",
    "aws_elasticache_cluster",
    "aws_sqs_queue",
    "aws_sns_topic",
    "aws_cloudfront_distribution",
    "aws_api_gateway_rest_api",
})

EDGE_ATTRIBUTES = (
    ("vpc_id",                 "in vpc"),
    ("subnet_id",              "in subnet"),
    ("security_groups",        "secured by"),
    ("vpc_security_group_ids", "secured by"),
    ("nat_gateway_id",         "routes via"),
    ("internet_gateway_id",    "routes via"),
    ("instance_id",            "attached to"),
    ("allocation_id",          "uses eip"),
    ("load_balancer_arn",      "behind lb"),
)

RENDER_CATEGORIES = {
    "aws_vpc":                     "vpc",
    "aws_subnet":                  "subnet",
    "aws_internet_gateway":        "igw",
    "aws_nat_gateway":             "nat",
    "aws_route_table":             "route_table",
    "aws_route_table_association": "route_table",
    "aws_security_group":          "security_group",
    "aws_instance":                "compute",
    "aws_db_instance":             "database",
    "aws_lb":                      "load_balancer",
    "aws_alb":                     "load_balancer",
    "aws_eip":                     "public_ip",
    "aws_s3_bucket":               "storage",
    "aws_lambda_function":         "function",
}


def extract_region(attrs: Dict[str, Any]) -> Optional[str]:
    """Region is the fourth field of an ARN (arn:aws:service:region:account:...)."""
    arn = attrs.get("arn")
    if isinstance(arn, str):
        parts = arn.split(":")
        if len(parts) >= 4 and parts[3]:
            return parts[3]
    return None


PROVIDER = ProviderConfig(
    id="aws",
    name="Amazon Web Services",
    short_name="AWS",
    resource_prefix="aws_",
    supported_types=SUPPORTED_TYPES,
    edge_attributes=EDGE_ATTRIBUTES,
    container_types=(
        ContainerType("aws_vpc", "vpc_id", "vpc"),
        ContainerType("aws_subnet", "subnet_id", "subnet"),
    ),
    render_categories=MappingProxyType(RENDER_CATEGORIES),
    extract_region=extract_region,
    ref_pattern=ref_pattern_for("aws_"),
)
