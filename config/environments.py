import os
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Mapping, Optional

from config.errors import ConfigurationError
from config.networking import vpc_cidr_for_region

ACCOUNT_ENV_VAR = "CDK_DEFAULT_ACCOUNT"
_ACCOUNT_PATTERN = re.compile(r"^\d{12}$")


class ReplicationMode(Enum):
    """How the credentials secret is protected across regions."""

    ENCRYPTED_REPLICATED = "encrypted-replicated"
    UNENCRYPTED_LOCAL = "unencrypted-local"


@dataclass
class RegionConfig:
    region: str
    max_azs: int = 2
    nat_gateways: int = 1

    @property
    def vpc_cidr(self) -> str:
        return vpc_cidr_for_region(self.region)


@dataclass
class DatabaseConfig:
    engine_version: str = "17.5"
    engine_major_version: str = "17"
    database_name: str = "auroraglobaldb"
    username: str = "postgres"
    primary_cluster_identifier: str = "aurora-global-primary-cluster"
    replica_cluster_identifier: str = "aurora-global-replica-cluster"
    min_capacity: float = 0
    max_capacity: float = 1.0
    backup_retention_days: int = 7
    backup_window: str = "03:00-04:00"
    deletion_protection: bool = False
    cloudwatch_logs_exports: List[str] = field(default_factory=lambda: ["postgresql"])


@dataclass
class SecretConfig:
    password_length: int = 32
    exclude_characters: str = '"@/\\'
    include_space: bool = False


@dataclass
class KeyConfig:
    alias_name: str = "aurora-global-secrets"
    enable_key_rotation: bool = True


@dataclass
class GlobalDatabaseConfig:
    # Referenced verbatim by the replica cluster; never repeat it elsewhere
    identifier: str = "aurora-global-cluster"
    deletion_protection: bool = False


@dataclass
class EnvironmentConfig:
    environment_name: str
    primary_region: RegionConfig
    secondary_region: RegionConfig
    replication_mode: ReplicationMode
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    secret: SecretConfig = field(default_factory=SecretConfig)
    key: KeyConfig = field(default_factory=KeyConfig)
    global_database: GlobalDatabaseConfig = field(default_factory=GlobalDatabaseConfig)
    stack_prefix: str = "AuroraGlobal"


def resolve_account(
    environ: Optional[Mapping[str, str]] = None, override: Optional[str] = None
) -> str:
    """Return the target AWS account id, failing fast when it is missing.

    ``override`` (usually the ``account`` context value) wins over the
    ``CDK_DEFAULT_ACCOUNT`` environment variable.
    """
    if environ is None:
        environ = os.environ

    account = override or environ.get(ACCOUNT_ENV_VAR, "")
    if not account:
        raise ConfigurationError(
            f"No target account configured: set {ACCOUNT_ENV_VAR} "
            "or pass --context account=<id>"
        )
    if not _ACCOUNT_PATTERN.match(account):
        raise ConfigurationError(f"Invalid AWS account id: {account!r}")
    return account


# Default two-region deployment: writable primary in N. Virginia,
# write-forwarding replica in Oregon
DEFAULT_CONFIG = EnvironmentConfig(
    environment_name="default",
    primary_region=RegionConfig(region="us-east-1"),
    secondary_region=RegionConfig(region="us-west-2"),
    replication_mode=ReplicationMode.ENCRYPTED_REPLICATED,
)
