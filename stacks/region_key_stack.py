from aws_cdk import Stack, CfnOutput, Tags
from constructs import Construct

from aurora_constructs.region_key import RegionKey
from config.environments import EnvironmentConfig
from deployment.plan import KeyReference


class RegionKeyStack(Stack):
    """Standalone per-region KMS key; has no dependencies of its own."""

    def __init__(self, scope: Construct, construct_id: str,
                 config: EnvironmentConfig,
                 **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        self.region_key = RegionKey(self, "RegionKey",
            config=config.key,
            description=f"KMS key for encrypting Aurora Global Database secrets ({self.region})"
        )
        self.encryption_key = self.region_key.key

        CfnOutput(self, "EncryptionKeyArn",
            value=self.encryption_key.key_arn,
            description="KMS Key ARN for encrypting secrets",
            export_name="SecretsEncryptionKeyArn"
        )

        CfnOutput(self, "EncryptionKeyId",
            value=self.encryption_key.key_id,
            description="KMS Key ID"
        )

        Tags.of(self).add("Environment", config.environment_name)
        Tags.of(self).add("Scope", "Regional")

    @property
    def key_reference(self) -> KeyReference:
        """Canonical alias reference other regions can resolve without a stack reference."""
        return KeyReference(
            region=self.region,
            account=self.account,
            alias_name=self.region_key.alias_name
        )
