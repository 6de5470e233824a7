"""
CloudFormation -> Terraform mapping tables.

CloudFormation resources are re-expressed as the Terraform types the AWS
provider config already knows, so they flow through the same graph builder
and layout as state, plan and HCL input.
"""
from dataclasses import dataclass
from typing import Dict

CFN_TYPE_MAP: Dict[str, str] = {
    # Networking
    "AWS::EC2::VPC":                             "aws_vpc",
    "AWS::EC2::Subnet":                          "aws_subnet",
    "AWS::EC2::InternetGateway":                 "aws_internet_gateway",
    "AWS::EC2::NatGateway":                      "aws_nat_gateway",
    "AWS::EC2::RouteTable":                      "aws_route_table",
    "AWS::EC2::Route":                           "aws_route",
    "AWS::EC2::SubnetRouteTableAssociation":     "aws_route_table_association",
    "AWS::EC2::SecurityGroup":                   "aws_security_group",
    "AWS::EC2::EIP":                             "aws_eip",

    # Compute
    "AWS::EC2::Instance":                        "aws_instance",
    "AWS::Lambda::Function":                     "aws_lambda_function",

    # Containers
    "AWS::ECS::Cluster":                         "aws_ecs_cluster",
    "AWS::ECS::Service":                         "aws_ecs_service",
    "AWS::ECS::TaskDefinition":                  "aws_ecs_task_definition",
    "AWS::EKS::Cluster":                         "aws_eks_cluster",

    # Database
    "AWS::RDS::DBInstance":                      "aws_db_instance",
    "AWS::ElastiCache::CacheCluster":            "aws_elasticache_cluster",

    # Storage
    "AWS::S3::Bucket":                           "aws_s3_bucket",

    # Load balancing
    "AWS::ElasticLoadBalancingV2::LoadBalancer": "aws_lb",
    "AWS::ElasticLoadBalancingV2::TargetGroup":  "aws_lb_target_group",
    "AWS::ElasticLoadBalancingV2::Listener":     "aws_lb_listener",

    # Messaging
    "AWS::SQS::Queue":                           "aws_sqs_queue",
    "AWS::SNS::Topic":                           "aws_sns_topic",

    # CDN / API
    "AWS::CloudFront::Distribution":             "aws_cloudfront_distribution",
    "AWS::ApiGateway::RestApi":                  "aws_api_gateway_rest_api",
}

# Property renames where the CloudFormation and Terraform names differ by more
# than PascalCase -> snake_case.
CFN_PROPERTY_MAP: Dict[str, Dict[str, str]] = {
    "AWS::EC2::VPC": {
        "CidrBlock": "cidr_block",
        "EnableDnsHostnames": "enable_dns_hostnames",
        "EnableDnsSupport": "enable_dns_support",
    },
    "AWS::EC2::Subnet": {
        "VpcId": "vpc_id",
        "CidrBlock": "cidr_block",
        "AvailabilityZone": "availability_zone",
        "MapPublicIpOnLaunch": "map_public_ip_on_launch",
    },
    "AWS::EC2::Instance": {
        "InstanceType": "instance_type",
        "ImageId": "ami",
        "SubnetId": "subnet_id",
        "SecurityGroupIds": "vpc_security_group_ids",
    },
    "AWS::EC2::SecurityGroup": {
        "GroupDescription": "description",
        "VpcId": "vpc_id",
        "GroupName": "name",
    },
    "AWS::EC2::NatGateway": {
        "SubnetId": "subnet_id",
        "AllocationId": "allocation_id",
    },
    "AWS::EC2::RouteTable": {
        "VpcId": "vpc_id",
    },
    "AWS::EC2::Route": {
        "RouteTableId": "route_table_id",
        "GatewayId": "gateway_id",
        "NatGatewayId": "nat_gateway_id",
    },
    "AWS::EC2::EIP": {
        "Domain": "domain",
        "InstanceId": "instance_id",
    },
    "AWS::S3::Bucket": {
        "BucketName": "bucket",
    },
    "AWS::Lambda::Function": {
        "FunctionName": "function_name",
        "Runtime": "runtime",
        "Handler": "handler",
        "MemorySize": "memory_size",
        "Timeout": "timeout",
    },
    "AWS::RDS::DBInstance": {
        "Engine": "engine",
        "EngineVersion": "engine_version",
        "DBInstanceClass": "instance_class",
        "AllocatedStorage": "allocated_storage",
        "MultiAZ": "multi_az",
        "DBSubnetGroupName": "db_subnet_group_name",
        "VPCSecurityGroups": "vpc_security_group_ids",
    },
    "AWS::ElasticLoadBalancingV2::LoadBalancer": {
        "Type": "load_balancer_type",
        "Scheme": "internal",
        "Subnets": "subnets",
        "SecurityGroups": "security_groups",
    },
    "AWS::ElasticLoadBalancingV2::TargetGroup": {
        "Port": "port",
        "Protocol": "protocol",
        "VpcId": "vpc_id",
        "TargetType": "target_type",
    },
    "AWS::ElasticLoadBalancingV2::Listener": {
        "Port": "port",
        "Protocol": "protocol",
        "LoadBalancerArn": "load_balancer_arn",
    },
    "AWS::ECS::Cluster": {
        "ClusterName": "name",
    },
    "AWS::SQS::Queue": {
        "QueueName": "name",
    },
    "AWS::SNS::Topic": {
        "TopicName": "name",
    },
    "AWS::EC2::SubnetRouteTableAssociation": {
        "SubnetId": "subnet_id",
        "RouteTableId": "route_table_id",
    },
}


@dataclass(frozen=True)
class GlueResource:
    target_ref: str     # property referencing the resource that receives the merge
    merge_attr: str     # Terraform attribute written onto the target
    value_ref: str      # property referencing the resource whose id is written


# Types that only express a relationship between two other resources; they are
# folded into their target instead of becoming nodes.
GLUE_RESOURCES: Dict[str, GlueResource] = {
    "AWS::EC2::VPCGatewayAttachment": GlueResource(
        target_ref="InternetGatewayId",
        merge_attr="vpc_id",
        value_ref="VpcId",
    ),
}
