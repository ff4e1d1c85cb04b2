import logging
from dataclasses import replace
from typing import Optional

from aws_cdk import (
    Stack,
    CfnOutput,
    aws_kms as kms,
    Tags
)
from constructs import Construct

from aurora_constructs.aurora_global_database import PrimaryAuroraCluster
from aurora_constructs.database_credentials import DatabaseCredentials
from aurora_constructs.secure_vpc import SecureVpc
from config.environments import EnvironmentConfig, ReplicationMode
from config.errors import ConfigurationError
from deployment.plan import DeploymentPlan, KeyRegistry

logger = logging.getLogger(__name__)


class PrimaryRegionStack(Stack):
    """
    Primary region: network, replicated credentials secret, the writable
    cluster and the global database seeded from it.

    The secondary region's key is resolved from ``key_registry`` by its
    canonical alias ARN; this stack never holds a reference to the stack that
    owns that key.
    """

    def __init__(self, scope: Construct, construct_id: str,
                 config: EnvironmentConfig,
                 key_registry: Optional[KeyRegistry] = None,
                 encryption_key: Optional[kms.IKey] = None,
                 replication_mode: Optional[ReplicationMode] = None,
                 plan: Optional[DeploymentPlan] = None,
                 **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        self.plan = plan
        self.replication_mode = self._resolve_replication_mode(
            replication_mode, encryption_key, key_registry
        )

        # Network follows the region this stack is deployed to
        self.network = SecureVpc(self, "PrimaryVpc",
            config=replace(config.primary_region, region=self.region),
            description="Security group for Aurora Global Database"
        )
        self.vpc = self.network.vpc
        self.security_group = self.network.security_group
        self._declare("Network")

        replica_key = None
        replica_region = None
        if self.replication_mode is ReplicationMode.ENCRYPTED_REPLICATED:
            replica_region = config.secondary_region.region
            reference = key_registry.lookup(replica_region)
            # KMS accepts alias ARNs where key ARNs are expected
            replica_key = kms.Key.from_key_arn(self, "ReplicaEncryptionKey",
                reference.alias_arn
            )
            self.replica_key_arn = reference.alias_arn
        else:
            self.replica_key_arn = None

        self.credentials = DatabaseCredentials(self, "Credentials",
            username=config.database.username,
            config=config.secret,
            encryption_key=encryption_key,
            replica_region=replica_region,
            replica_key=replica_key
        )
        self.secret = self.credentials.secret
        self._declare("DatabaseSecret")

        self.database = PrimaryAuroraCluster(self, "Database",
            network=self.network,
            config=config.database,
            global_config=config.global_database,
            secret=self.secret
        )
        self.cluster = self.database.cluster
        self.global_cluster = self.database.global_cluster
        self.global_database_identifier = self.database.global_identifier
        self._declare("PrimaryCluster", "Network", "DatabaseSecret")
        self.global_cluster_step = self._declare("GlobalCluster", "PrimaryCluster")

        # Outputs
        CfnOutput(self, "VpcId",
            value=self.vpc.vpc_id,
            description="Primary VPC ID"
        )

        CfnOutput(self, "ClusterEndpoint",
            value=self.cluster.cluster_endpoint.hostname,
            description="Aurora cluster endpoint"
        )

        CfnOutput(self, "ClusterArn",
            value=self.cluster.cluster_arn,
            description="Aurora cluster ARN",
            export_name="PrimaryClusterArn"
        )

        CfnOutput(self, "SecretArn",
            value=self.secret.secret_arn,
            description="Database secret ARN",
            export_name="PrimarySecretArn"
        )

        CfnOutput(self, "GlobalClusterArn",
            value=self.global_cluster.ref,
            description="Aurora Global Database cluster ARN",
            export_name="GlobalClusterArn"
        )

        CfnOutput(self, "GlobalClusterIdentifier",
            value=self.global_database_identifier,
            description="Aurora Global Database identifier"
        )

        Tags.of(self).add("Environment", config.environment_name)
        Tags.of(self).add("Region", "Primary")

    def _resolve_replication_mode(self, requested, encryption_key, key_registry):
        if requested is None:
            if encryption_key is None:
                logger.warning(
                    "%s: no encryption key supplied, credentials secret will not "
                    "be replicated across regions", self.node.id
                )
                return ReplicationMode.UNENCRYPTED_LOCAL
            requested = ReplicationMode.ENCRYPTED_REPLICATED

        if requested is ReplicationMode.ENCRYPTED_REPLICATED:
            if encryption_key is None:
                raise ConfigurationError(
                    f"{self.node.id}: {requested.value} mode requires an encryption key"
                )
            if key_registry is None:
                raise ConfigurationError(
                    f"{self.node.id}: {requested.value} mode requires a key registry "
                    "to resolve the replica region's key"
                )
        elif encryption_key is not None:
            raise ConfigurationError(
                f"{self.node.id}: {requested.value} mode does not take an encryption key"
            )
        return requested

    def _declare(self, name: str, *depends_on: str) -> str:
        step = f"{self.node.id}/{name}"
        if self.plan is not None:
            self.plan.declare(step, [f"{self.node.id}/{d}" for d in depends_on])
        return step
