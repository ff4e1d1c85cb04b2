class ConfigurationError(Exception):
    """Raised while the deployment plan is being constructed, before any
    resource is declared."""


class UnsupportedRegionError(ConfigurationError):
    def __init__(self, region: str, supported) -> None:
        self.region = region
        self.supported = tuple(supported)
        super().__init__(
            f"Unsupported region: {region}. "
            f"Only {' and '.join(self.supported)} are supported."
        )


class PlanOrderingError(ConfigurationError):
    """A plan step was declared before one of the steps it depends on."""
