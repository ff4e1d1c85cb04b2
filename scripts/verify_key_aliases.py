"""
Pre-deployment check that every regional key alias resolves in KMS.

Run from the repository root as a module, or through the installed
``verify-key-aliases`` console script:

    python -m scripts.verify_key_aliases --account 123456789012
"""
import argparse
import logging
import sys
from typing import List, Optional

import boto3
from botocore.exceptions import ClientError

from config.environments import DEFAULT_CONFIG, EnvironmentConfig, resolve_account
from deployment.plan import KeyReference, KeyRegistry

logger = logging.getLogger(__name__)


def registry_for(account: str, config: EnvironmentConfig = DEFAULT_CONFIG) -> KeyRegistry:
    """Rebuild the key registry the deployment would publish, without synthesizing."""
    registry = KeyRegistry()
    for region_config in (config.primary_region, config.secondary_region):
        registry.publish(
            KeyReference(
                region=region_config.region,
                account=account,
                alias_name=config.key.alias_name,
            )
        )
    return registry


def find_missing_key_aliases(registry: KeyRegistry, session=None, clients=None) -> List[str]:
    """
    Return the regions whose registered key alias does not resolve in KMS.

    The primary stack addresses the secondary key only by alias ARN, so a
    missing alias otherwise surfaces mid-deployment. ``clients`` maps region
    to a pre-built KMS client.
    """
    session = session or boto3.session.Session()
    clients = clients or {}

    missing = []
    for region in registry.regions():
        reference = registry.lookup(region)
        kms = clients.get(region) or session.client("kms", region_name=region)
        try:
            response = kms.describe_key(KeyId=reference.alias_arn)
        except ClientError as e:
            if e.response["Error"]["Code"] != "NotFoundException":
                raise
            logger.warning("Alias %s does not exist", reference.alias_arn)
            missing.append(region)
            continue

        key_state = response["KeyMetadata"].get("KeyState")
        if key_state != "Enabled":
            logger.warning("Alias %s points to a key in state %s", reference.alias_arn, key_state)
            missing.append(region)
        else:
            logger.info("Alias %s resolves to %s", reference.alias_arn, response["KeyMetadata"]["KeyId"])

    return missing


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="verify-key-aliases",
        description="Check that every regional key alias exists before deploying the primary stack. "
                    "Run as `python -m scripts.verify_key_aliases` from the repository root."
    )
    parser.add_argument("--account", help="Target account id (defaults to CDK_DEFAULT_ACCOUNT)")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    account = resolve_account(override=args.account)
    missing = find_missing_key_aliases(registry_for(account))
    if missing:
        logger.error("Deploy the key stacks for %s first", ", ".join(missing))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
