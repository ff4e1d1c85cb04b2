from dataclasses import replace
from typing import Optional

from aws_cdk import Stack, CfnOutput, aws_kms as kms, Tags
from constructs import Construct

from aurora_constructs.aurora_global_database import ReplicaAuroraCluster
from aurora_constructs.secure_vpc import SecureVpc
from config.environments import EnvironmentConfig
from config.errors import ConfigurationError
from deployment.plan import DeploymentPlan


class SecondaryRegionStack(Stack):
    """
    Secondary region: network plus a write-forwarding replica cluster that
    joins the global database created by the primary stack.

    Only the global identifier string is shared with the primary; this stack
    never modifies the global database itself.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        config: EnvironmentConfig,
        global_database_identifier: str,
        encryption_key: kms.IKey,
        plan: Optional[DeploymentPlan] = None,
        global_cluster_step: Optional[str] = None,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        if not global_database_identifier:
            raise ConfigurationError(
                f"{construct_id}: a global database identifier is required"
            )

        self.network = SecureVpc(
            self,
            "SecondaryVpc",
            config=replace(config.secondary_region, region=self.region),
            description="Security group for Aurora replica cluster",
        )
        self.vpc = self.network.vpc
        self.security_group = self.network.security_group

        self.database = ReplicaAuroraCluster(
            self,
            "Database",
            network=self.network,
            config=config.database,
            global_cluster_identifier=global_database_identifier,
            encryption_key=encryption_key,
        )
        self.cluster = self.database.cluster
        self.global_database_identifier = global_database_identifier

        if plan is not None:
            network_step = f"{construct_id}/Network"
            plan.declare(network_step)
            replica_dependencies = [network_step]
            if global_cluster_step is not None:
                replica_dependencies.append(global_cluster_step)
            plan.declare(f"{construct_id}/ReplicaCluster", replica_dependencies)

        # Outputs
        CfnOutput(
            self, "VpcId", value=self.vpc.vpc_id, description="Secondary VPC ID"
        )

        CfnOutput(
            self,
            "ClusterIdentifier",
            value=self.cluster.ref,
            description="Aurora replica cluster identifier",
        )

        CfnOutput(
            self,
            "GlobalClusterIdentifier",
            value=global_database_identifier,
            description="Aurora Global Database this replica belongs to",
        )

        Tags.of(self).add("Environment", config.environment_name)
        Tags.of(self).add("Region", "Secondary")
