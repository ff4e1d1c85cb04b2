import json
from typing import Optional

from aws_cdk import aws_kms as kms, aws_secretsmanager as secretsmanager, Tags
from constructs import Construct

from config.environments import SecretConfig


class DatabaseCredentials(Construct):
    """
    Generated master credentials for the primary cluster.

    With an ``encryption_key`` the secret is encrypted with it and replicated
    into ``replica_region`` under ``replica_key``. Without one, the secret
    stays local to its region and uses the AWS managed key.
    """

    def __init__(self, scope: Construct, construct_id: str,
                 username: str,
                 config: SecretConfig,
                 encryption_key: Optional[kms.IKey] = None,
                 replica_region: Optional[str] = None,
                 replica_key: Optional[kms.IKey] = None,
                 **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        replication = {}
        if encryption_key is not None:
            replication["encryption_key"] = encryption_key
            if replica_region is not None:
                replication["replica_regions"] = [
                    secretsmanager.ReplicaRegion(
                        region=replica_region,
                        encryption_key=replica_key
                    )
                ]

        self.secret = secretsmanager.Secret(self, "DatabaseSecret",
            description="Aurora Global Database credentials",
            generate_secret_string=secretsmanager.SecretStringGenerator(
                secret_string_template=json.dumps({"username": username}),
                generate_string_key="password",
                exclude_characters=config.exclude_characters,
                include_space=config.include_space,
                password_length=config.password_length
            ),
            **replication
        )
        self.is_replicated = "replica_regions" in replication

        Tags.of(self).add("Component", "Credentials")
