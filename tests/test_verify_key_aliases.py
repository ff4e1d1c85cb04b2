import boto3
import pytest
from botocore.exceptions import ClientError
from botocore.stub import Stubber

import scripts.verify_key_aliases as verify_key_aliases
from scripts.verify_key_aliases import find_missing_key_aliases, main, registry_for

ACCOUNT = "123456789012"


def kms_client(region):
    return boto3.client(
        "kms",
        region_name=region,
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


class TestFindMissingKeyAliases:
    """Test the pre-deployment alias check"""

    def setup_method(self):
        self.registry = registry_for(ACCOUNT)
        self.clients = {region: kms_client(region) for region in ("us-east-1", "us-west-2")}
        self.stubbers = {region: Stubber(client) for region, client in self.clients.items()}

    def teardown_method(self):
        for stubber in self.stubbers.values():
            stubber.deactivate()

    def _expect_key(self, region, key_state="Enabled"):
        self.stubbers[region].add_response(
            "describe_key",
            {"KeyMetadata": {"KeyId": f"{region}-key", "KeyState": key_state}},
            {"KeyId": self.registry.lookup(region).alias_arn},
        )

    def _expect_error(self, region, code):
        self.stubbers[region].add_client_error(
            "describe_key",
            service_error_code=code,
            service_message="error",
            http_status_code=400,
            expected_params={"KeyId": self.registry.lookup(region).alias_arn},
        )

    def _activate(self):
        for stubber in self.stubbers.values():
            stubber.activate()

    def test_registry_matches_deployment(self):
        assert self.registry.lookup("us-west-2").alias_arn == (
            "arn:aws:kms:us-west-2:123456789012:alias/aurora-global-secrets"
        )
        assert self.registry.lookup("us-east-1").alias_arn == (
            "arn:aws:kms:us-east-1:123456789012:alias/aurora-global-secrets"
        )

    def test_all_aliases_resolve(self):
        self._expect_key("us-east-1")
        self._expect_key("us-west-2")
        self._activate()

        assert find_missing_key_aliases(self.registry, clients=self.clients) == []

    def test_missing_secondary_alias(self):
        self._expect_key("us-east-1")
        self._expect_error("us-west-2", "NotFoundException")
        self._activate()

        assert find_missing_key_aliases(self.registry, clients=self.clients) == ["us-west-2"]

    def test_disabled_key_is_reported(self):
        self._expect_key("us-east-1", key_state="PendingDeletion")
        self._expect_key("us-west-2")
        self._activate()

        assert find_missing_key_aliases(self.registry, clients=self.clients) == ["us-east-1"]

    def test_other_errors_propagate(self):
        self._expect_error("us-east-1", "AccessDeniedException")
        self._activate()

        with pytest.raises(ClientError):
            find_missing_key_aliases(self.registry, clients=self.clients)


class TestMain:
    """Test the verify-key-aliases command line entry point"""

    def test_exit_status_when_alias_missing(self, monkeypatch):
        calls = []

        def fake_find(registry):
            calls.append(registry.regions())
            return ["us-west-2"]

        monkeypatch.setattr(verify_key_aliases, "find_missing_key_aliases", fake_find)

        assert main(["--account", ACCOUNT]) == 1
        assert calls == [["us-east-1", "us-west-2"]]

    def test_exit_status_when_all_resolve(self, monkeypatch):
        monkeypatch.setattr(verify_key_aliases, "find_missing_key_aliases", lambda registry: [])

        assert main(["--account", ACCOUNT]) == 0

    def test_account_falls_back_to_environment(self, monkeypatch):
        monkeypatch.setenv("CDK_DEFAULT_ACCOUNT", ACCOUNT)
        monkeypatch.setattr(verify_key_aliases, "find_missing_key_aliases", lambda registry: [])

        assert main([]) == 0
