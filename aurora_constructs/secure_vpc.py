from aws_cdk import (
    aws_ec2 as ec2,
    aws_rds as rds,
    Tags
)
from constructs import Construct

from config.environments import RegionConfig


class SecureVpc(Construct):
    """
    Regional network for an Aurora cluster: VPC with a public/private subnet
    split, the database security group and a subnet group over the private
    subnets.
    """

    def __init__(self, scope: Construct, construct_id: str,
                 config: RegionConfig,
                 description: str = "Security group for Aurora Global Database",
                 **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        # Resolved first so an unsupported region aborts before anything is declared
        cidr = config.vpc_cidr

        self.vpc = ec2.Vpc(self, "VPC",
            ip_addresses=ec2.IpAddresses.cidr(cidr),
            max_azs=config.max_azs,
            nat_gateways=config.nat_gateways,
            enable_dns_hostnames=True,
            enable_dns_support=True,
            subnet_configuration=[
                ec2.SubnetConfiguration(
                    name="Public",
                    subnet_type=ec2.SubnetType.PUBLIC,
                    cidr_mask=24
                ),
                ec2.SubnetConfiguration(
                    name="Private",
                    subnet_type=ec2.SubnetType.PRIVATE_WITH_EGRESS,
                    cidr_mask=24
                )
            ]
        )
        self.cidr = cidr

        self.security_group = ec2.SecurityGroup(self, "AuroraSecurityGroup",
            vpc=self.vpc,
            description=description,
            allow_all_outbound=True
        )

        self.subnet_group = rds.SubnetGroup(self, "SubnetGroup",
            vpc=self.vpc,
            description="Private subnets for Aurora",
            vpc_subnets=ec2.SubnetSelection(
                subnet_type=ec2.SubnetType.PRIVATE_WITH_EGRESS
            )
        )

        Tags.of(self).add("Component", "Networking")
