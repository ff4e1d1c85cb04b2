from aws_cdk import (
    aws_rds as rds,
    aws_ec2 as ec2,
    aws_kms as kms,
    aws_secretsmanager as secretsmanager,
    RemovalPolicy,
    Duration,
    Tags
)
from constructs import Construct

from config.environments import DatabaseConfig, GlobalDatabaseConfig
from aurora_constructs.secure_vpc import SecureVpc

ENGINE = "aurora-postgresql"
SERVERLESS_INSTANCE_CLASS = "db.serverless"


def postgres_engine(config: DatabaseConfig) -> rds.IClusterEngine:
    return rds.DatabaseClusterEngine.aurora_postgres(
        version=rds.AuroraPostgresEngineVersion.of(
            config.engine_version, config.engine_major_version
        )
    )


class PrimaryAuroraCluster(Construct):
    """
    Writable Aurora Serverless v2 cluster and the global database seeded
    from it.

    The global cluster is created from an existing source cluster, so it is
    declared after the cluster and carries an explicit dependency on it.
    """

    def __init__(self, scope: Construct, construct_id: str,
                 network: SecureVpc,
                 config: DatabaseConfig,
                 global_config: GlobalDatabaseConfig,
                 secret: secretsmanager.ISecret,
                 **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        self.cluster = rds.DatabaseCluster(self, "AuroraCluster",
            engine=postgres_engine(config),
            credentials=rds.Credentials.from_secret(secret),
            default_database_name=config.database_name,
            vpc=network.vpc,
            vpc_subnets=ec2.SubnetSelection(
                subnet_type=ec2.SubnetType.PRIVATE_WITH_EGRESS
            ),
            subnet_group=network.subnet_group,
            security_groups=[network.security_group],
            serverless_v2_min_capacity=config.min_capacity,
            serverless_v2_max_capacity=config.max_capacity,
            writer=rds.ClusterInstance.serverless_v2("writer"),
            backup=rds.BackupProps(
                retention=Duration.days(config.backup_retention_days),
                preferred_window=config.backup_window
            ),
            # Deletion protection stays off so non-production stacks can be torn
            # down; RETAIN still keeps the cluster if the stack is deleted
            removal_policy=RemovalPolicy.RETAIN,
            deletion_protection=config.deletion_protection,
            storage_encrypted=True,
            enable_data_api=False,
            cluster_identifier=config.primary_cluster_identifier
        )

        self.global_identifier = global_config.identifier
        self.global_cluster = rds.CfnGlobalCluster(self, "GlobalCluster",
            global_cluster_identifier=global_config.identifier,
            deletion_protection=global_config.deletion_protection,
            source_db_cluster_identifier=self.cluster.cluster_arn
        )
        self.global_cluster.node.add_dependency(self.cluster)

        Tags.of(self).add("Component", "Database")


class ReplicaAuroraCluster(Construct):
    """
    Secondary-region cluster joined to an existing global database, with
    write forwarding and a single serverless v2 instance.

    Engine and version must match the primary; that is not checked here.
    """

    def __init__(self, scope: Construct, construct_id: str,
                 network: SecureVpc,
                 config: DatabaseConfig,
                 global_cluster_identifier: str,
                 encryption_key: kms.IKey,
                 **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        self.global_cluster_identifier = global_cluster_identifier

        self.cluster = rds.CfnDBCluster(self, "ReplicaCluster",
            engine=ENGINE,
            engine_version=config.engine_version,
            global_cluster_identifier=global_cluster_identifier,
            db_cluster_identifier=config.replica_cluster_identifier,
            vpc_security_group_ids=[network.security_group.security_group_id],
            db_subnet_group_name=network.subnet_group.subnet_group_name,
            storage_encrypted=True,
            kms_key_id=encryption_key.key_arn,
            backup_retention_period=config.backup_retention_days,
            enable_cloudwatch_logs_exports=list(config.cloudwatch_logs_exports),
            serverless_v2_scaling_configuration=rds.CfnDBCluster.ServerlessV2ScalingConfigurationProperty(
                min_capacity=config.min_capacity,
                max_capacity=config.max_capacity
            ),
            enable_global_write_forwarding=True
        )

        self.instance = rds.CfnDBInstance(self, "ReplicaInstance",
            engine=ENGINE,
            db_instance_class=SERVERLESS_INSTANCE_CLASS,
            db_cluster_identifier=self.cluster.ref,
            publicly_accessible=False
        )

        Tags.of(self).add("Component", "Database")
