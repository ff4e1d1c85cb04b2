from aws_cdk import aws_kms as kms, RemovalPolicy, Tags
from constructs import Construct

from config.environments import KeyConfig

ALIAS_PREFIX = "alias/"


def alias_name_for(alias: str) -> str:
    """Normalise ``alias`` to the ``alias/<name>`` form KMS expects."""
    if alias.startswith(ALIAS_PREFIX):
        return alias
    return f"{ALIAS_PREFIX}{alias}"


def key_alias_arn(region: str, account: str, alias: str, partition: str = "aws") -> str:
    """
    Compose the canonical ARN of a KMS alias.

    The result depends only on its inputs, so a stack in one region can
    address the key in another region without holding a reference to the
    stack that created it. KMS accepts alias ARNs wherever a key ARN is
    expected.
    """
    return f"arn:{partition}:kms:{region}:{account}:{alias_name_for(alias)}"


class RegionKey(Construct):
    """
    Region-scoped KMS key with automatic rotation and a fixed alias.

    The alias is never derived from a generated id: consumers in other regions
    rebuild it with ``key_alias_arn``.
    """

    def __init__(self, scope: Construct, construct_id: str,
                 config: KeyConfig,
                 description: str = "KMS key for encrypting Aurora Global Database secrets",
                 **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        self.key = kms.Key(self, "SecretsEncryptionKey",
            description=description,
            enable_key_rotation=config.enable_key_rotation,
            # Losing this key makes every secret and cluster it encrypts unreadable
            removal_policy=RemovalPolicy.RETAIN
        )

        self.alias = kms.Alias(self, "SecretsEncryptionKeyAlias",
            alias_name=alias_name_for(config.alias_name),
            target_key=self.key
        )
        self.alias_name = alias_name_for(config.alias_name)

        Tags.of(self).add("Component", "Encryption")
