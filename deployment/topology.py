"""
Top-level composition of the two-region Aurora global database.

Phase one declares a key stack per region and publishes each key's alias
reference to a ``KeyRegistry``. Phase two declares the primary stack, which
resolves the secondary key from the registry, and then the secondary stack,
which receives the primary's global identifier and its own region's key.
"""
import logging
from dataclasses import dataclass

import aws_cdk as cdk

from config.environments import DEFAULT_CONFIG, EnvironmentConfig, ReplicationMode
from config.networking import vpc_cidr_for_region
from deployment.plan import DeploymentPlan, KeyRegistry
from stacks.primary_region_stack import PrimaryRegionStack
from stacks.region_key_stack import RegionKeyStack
from stacks.secondary_region_stack import SecondaryRegionStack

logger = logging.getLogger(__name__)


@dataclass
class AuroraGlobalTopology:
    primary_key_stack: RegionKeyStack
    secondary_key_stack: RegionKeyStack
    primary_stack: PrimaryRegionStack
    secondary_stack: SecondaryRegionStack
    key_registry: KeyRegistry
    plan: DeploymentPlan

    @property
    def stacks(self):
        return [
            self.primary_key_stack,
            self.secondary_key_stack,
            self.primary_stack,
            self.secondary_stack,
        ]


def build_topology(
    app: cdk.App, account: str, config: EnvironmentConfig = DEFAULT_CONFIG
) -> AuroraGlobalTopology:
    primary_region = config.primary_region.region
    secondary_region = config.secondary_region.region

    # Both regions are validated before any stack is declared
    vpc_cidr_for_region(primary_region)
    vpc_cidr_for_region(secondary_region)

    prefix = config.stack_prefix
    plan = DeploymentPlan()
    registry = KeyRegistry()

    def env(region: str) -> cdk.Environment:
        return cdk.Environment(account=account, region=region)

    # Phase 1: regional keys, independent of each other
    logger.info("Declaring encryption keys for %s and %s", primary_region, secondary_region)
    primary_key_stack = RegionKeyStack(
        app,
        f"{prefix}KmsStackPrimary",
        config=config,
        env=env(primary_region),
        description=f"KMS key stack for encrypting Aurora Global Database secrets ({primary_region})",
    )
    secondary_key_stack = RegionKeyStack(
        app,
        f"{prefix}KmsStackSecondary",
        config=config,
        env=env(secondary_region),
        description=f"KMS key stack for encrypting Aurora Global Database secrets ({secondary_region})",
    )
    for key_stack in (primary_key_stack, secondary_key_stack):
        plan.declare(key_stack.node.id)
        registry.publish(key_stack.key_reference)

    # Phase 2: primary resolves the secondary key through the registry
    replicated = config.replication_mode is ReplicationMode.ENCRYPTED_REPLICATED
    primary_id = f"{prefix}PrimaryStack"
    primary_dependencies = [primary_key_stack.node.id]
    if replicated:
        primary_dependencies.append(secondary_key_stack.node.id)
    logger.info(
        "Declaring primary stack %s in %s (%s)",
        primary_id, primary_region, config.replication_mode.value,
    )
    plan.declare(primary_id, primary_dependencies)
    primary_stack = PrimaryRegionStack(
        app,
        primary_id,
        config=config,
        key_registry=registry if replicated else None,
        encryption_key=primary_key_stack.encryption_key if replicated else None,
        replication_mode=config.replication_mode,
        plan=plan,
        env=env(primary_region),
        description=f"Primary region stack for Aurora Global Database ({primary_region})",
    )

    secondary_id = f"{prefix}SecondaryStack"
    logger.info("Declaring secondary stack %s in %s", secondary_id, secondary_region)
    plan.declare(secondary_id, [primary_id, secondary_key_stack.node.id])
    secondary_stack = SecondaryRegionStack(
        app,
        secondary_id,
        config=config,
        global_database_identifier=primary_stack.global_database_identifier,
        encryption_key=secondary_key_stack.encryption_key,
        plan=plan,
        global_cluster_step=primary_stack.global_cluster_step,
        env=env(secondary_region),
        description=f"Secondary region stack for Aurora Global Database ({secondary_region})",
    )

    # Stack dependencies
    primary_stack.add_dependency(primary_key_stack)
    if replicated:
        # The replica key is only reachable by alias, so ordering is the sole edge
        primary_stack.add_dependency(secondary_key_stack)
    secondary_stack.add_dependency(primary_stack)
    secondary_stack.add_dependency(secondary_key_stack)

    plan.validate()

    cdk.Tags.of(app).add("Project", "aurora-global-database")
    cdk.Tags.of(app).add("ManagedBy", "CDK")

    return AuroraGlobalTopology(
        primary_key_stack=primary_key_stack,
        secondary_key_stack=secondary_key_stack,
        primary_stack=primary_stack,
        secondary_stack=secondary_stack,
        key_registry=registry,
        plan=plan,
    )
