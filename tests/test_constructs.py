import json

import aws_cdk as cdk
import pytest
from aws_cdk import assertions

from aurora_constructs.database_credentials import DatabaseCredentials
from aurora_constructs.region_key import RegionKey, alias_name_for, key_alias_arn
from aurora_constructs.secure_vpc import SecureVpc
from config.environments import DEFAULT_CONFIG, RegionConfig
from config.errors import UnsupportedRegionError

ACCOUNT = "123456789012"


def make_stack(region="us-east-1"):
    app = cdk.App()
    return cdk.Stack(app, "TestStack", env=cdk.Environment(account=ACCOUNT, region=region))


class TestKeyAliasArn:
    """Test canonical alias reference composition"""

    def test_canonical_form(self):
        arn = key_alias_arn("us-west-2", ACCOUNT, "aurora-global-secrets")

        assert arn == "arn:aws:kms:us-west-2:123456789012:alias/aurora-global-secrets"

    def test_deterministic(self):
        first = key_alias_arn("us-west-2", ACCOUNT, "aurora-global-secrets")
        second = key_alias_arn("us-west-2", ACCOUNT, "aurora-global-secrets")

        assert first == second

    def test_prefixed_alias_is_not_doubled(self):
        assert key_alias_arn("us-east-1", ACCOUNT, "alias/foo").endswith(":alias/foo")
        assert alias_name_for("foo") == alias_name_for("alias/foo") == "alias/foo"

    def test_partition(self):
        arn = key_alias_arn("us-east-1", ACCOUNT, "foo", partition="aws-us-gov")

        assert arn.startswith("arn:aws-us-gov:kms:")


class TestRegionKey:
    """Test the per-region KMS key construct"""

    def test_key_is_rotated_and_retained(self):
        stack = make_stack()
        RegionKey(stack, "Key", config=DEFAULT_CONFIG.key)
        template = assertions.Template.from_stack(stack)

        template.resource_count_is("AWS::KMS::Key", 1)
        template.has_resource("AWS::KMS::Key", {
            "Properties": {"EnableKeyRotation": True},
            "DeletionPolicy": "Retain",
            "UpdateReplacePolicy": "Retain",
        })

    def test_alias_is_fixed(self):
        stack = make_stack()
        key = RegionKey(stack, "Key", config=DEFAULT_CONFIG.key)
        template = assertions.Template.from_stack(stack)

        template.has_resource_properties("AWS::KMS::Alias", {
            "AliasName": "alias/aurora-global-secrets"
        })
        assert key.alias_name == "alias/aurora-global-secrets"


class TestSecureVpc:
    """Test the regional network construct"""

    def test_vpc_uses_region_cidr(self):
        stack = make_stack("us-west-2")
        network = SecureVpc(stack, "Network", config=RegionConfig(region="us-west-2"))
        template = assertions.Template.from_stack(stack)

        template.has_resource_properties("AWS::EC2::VPC", {
            "CidrBlock": "10.1.0.0/16",
            "EnableDnsHostnames": True,
            "EnableDnsSupport": True,
        })
        template.resource_count_is("AWS::EC2::NatGateway", 1)
        template.resource_count_is("AWS::RDS::DBSubnetGroup", 1)
        assert network.cidr == "10.1.0.0/16"

    def test_security_group_allows_outbound(self):
        stack = make_stack()
        SecureVpc(stack, "Network", config=RegionConfig(region="us-east-1"))
        template = assertions.Template.from_stack(stack)

        template.has_resource_properties("AWS::EC2::SecurityGroup", {
            "SecurityGroupEgress": [{"CidrIp": "0.0.0.0/0", "IpProtocol": "-1"}]
        })

    def test_unsupported_region_declares_nothing(self):
        stack = make_stack("eu-west-1")

        with pytest.raises(UnsupportedRegionError):
            SecureVpc(stack, "Network", config=RegionConfig(region="eu-west-1"))

        assert stack.node.try_find_child("Network").node.children == []


class TestDatabaseCredentials:
    """Test the generated credentials secret"""

    def test_password_generation(self):
        stack = make_stack()
        DatabaseCredentials(stack, "Credentials", username="postgres", config=DEFAULT_CONFIG.secret)
        template = assertions.Template.from_stack(stack)

        template.has_resource_properties("AWS::SecretsManager::Secret", {
            "GenerateSecretString": {
                "SecretStringTemplate": json.dumps({"username": "postgres"}),
                "GenerateStringKey": "password",
                "ExcludeCharacters": '"@/\\',
                "IncludeSpace": False,
                "PasswordLength": 32,
            }
        })

    def test_replicates_with_key(self):
        stack = make_stack()
        key = RegionKey(stack, "Key", config=DEFAULT_CONFIG.key).key
        replica_arn = key_alias_arn("us-west-2", ACCOUNT, "aurora-global-secrets")
        replica_key = cdk.aws_kms.Key.from_key_arn(stack, "ReplicaKey", replica_arn)

        credentials = DatabaseCredentials(stack, "Credentials",
            username="postgres",
            config=DEFAULT_CONFIG.secret,
            encryption_key=key,
            replica_region="us-west-2",
            replica_key=replica_key
        )
        template = assertions.Template.from_stack(stack)

        template.has_resource_properties("AWS::SecretsManager::Secret", {
            "KmsKeyId": assertions.Match.any_value(),
            "ReplicaRegions": [{"Region": "us-west-2", "KmsKeyId": replica_arn}],
        })
        assert credentials.is_replicated is True

    def test_no_key_means_no_replication(self):
        stack = make_stack()
        credentials = DatabaseCredentials(stack, "Credentials",
            username="postgres",
            config=DEFAULT_CONFIG.secret,
            replica_region="us-west-2"
        )
        template = assertions.Template.from_stack(stack)

        secrets = template.find_resources("AWS::SecretsManager::Secret")
        properties = next(iter(secrets.values()))["Properties"]
        assert "ReplicaRegions" not in properties
        assert "KmsKeyId" not in properties
        assert credentials.is_replicated is False
