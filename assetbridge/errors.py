"""Exceptions raised by the asset pipeline."""


class AssetError(Exception):
    """Base class for all asset pipeline errors."""


class ConfigurationError(AssetError):
    """Raised when the pipeline is given an unusable configuration."""


class EnvironmentSealedError(ConfigurationError):
    """Raised when registering on an environment that has been sealed."""

    def __init__(self, what: str):
        self.what = what
        super().__init__(
            f"Cannot register {what}: the asset environment is sealed. "
            "Register helpers and bundles before calling assets()"
        )


class AssetNotFoundError(AssetError):
    def __init__(self, logical_path: str, kind: str = "Asset"):
        self.logical_path = logical_path
        super().__init__(f"{kind} [{logical_path}] not found")


class AssetNotCompiledError(AssetError):
    """Raised in production when an asset is missing from the manifest.

    This almost always means the assets were not precompiled before deploying.
    """

    def __init__(self, logical_path: str):
        self.logical_path = logical_path
        super().__init__(f"Asset [{logical_path}] has not been compiled")


class AssetCompileError(AssetError):
    def __init__(self, logical_path: str, message: str):
        self.logical_path = logical_path
        super().__init__(f"Failed to compile asset [{logical_path}]: {message}")
