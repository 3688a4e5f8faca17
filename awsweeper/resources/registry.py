"""Supported resource types, keyed by their Terraform-style name."""
from typing import Dict, List

from awsweeper.resources.autoscaling import AutoScalingGroup, LaunchConfiguration
from awsweeper.resources.base import ResourceKind
from awsweeper.resources.ebs import Snapshot, Volume
from awsweeper.resources.ec2 import ElasticIP, Image, Instance, KeyPair
from awsweeper.resources.elb import ClassicLoadBalancer
from awsweeper.resources.iam import IamInstanceProfile, IamPolicy, IamRole, IamUser
from awsweeper.resources.s3 import Bucket
from awsweeper.resources.vpc import (
    InternetGateway, NatGateway, NetworkAcl, NetworkInterface, RouteTable, SecurityGroup, Subnet, Vpc, VpcEndpoint,
)

KINDS: Dict[str, ResourceKind] = {
    kind.type_name: kind
    for kind in (
        AutoScalingGroup(),
        LaunchConfiguration(),
        Instance(),
        KeyPair(),
        ElasticIP(),
        Image(),
        Volume(),
        Snapshot(),
        ClassicLoadBalancer(),
        VpcEndpoint(),
        NatGateway(),
        NetworkInterface(),
        InternetGateway(),
        Subnet(),
        RouteTable(),
        SecurityGroup(),
        NetworkAcl(),
        Vpc(),
        IamUser(),
        IamRole(),
        IamInstanceProfile(),
        IamPolicy(),
        Bucket(),
    )
}


def get_kind(resource_type: str) -> ResourceKind:
    try:
        return KINDS[resource_type]
    except KeyError:
        raise KeyError(f"Unsupported resource type: {resource_type}") from None


def supported_types() -> List[str]:
    return sorted(KINDS)


def rank_table() -> Dict[str, int]:
    return {name: kind.rank for name, kind in KINDS.items()}
