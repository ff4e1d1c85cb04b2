from typing import Dict, List

from aws_cdk import Token

from config.errors import ConfigurationError, UnsupportedRegionError

# Each supported region gets its own /16 so the two VPCs never overlap
SUPPORTED_REGION_CIDRS: Dict[str, str] = {
    "us-east-1": "10.0.0.0/16",
    "us-west-2": "10.1.0.0/16",
}


def supported_regions() -> List[str]:
    return list(SUPPORTED_REGION_CIDRS)


def vpc_cidr_for_region(region: str) -> str:
    """Return the fixed VPC CIDR block assigned to ``region``.

    The mapping is a static table. Anything outside it is rejected rather than
    given a default block, since two regions sharing a range would collide.
    """
    if region is None or Token.is_unresolved(region):
        raise ConfigurationError(
            "Stack must target an explicit region to allocate a VPC CIDR block"
        )

    cidr = SUPPORTED_REGION_CIDRS.get(region)
    if cidr is None:
        raise UnsupportedRegionError(region, SUPPORTED_REGION_CIDRS)
    return cidr
