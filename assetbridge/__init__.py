from assetbridge.errors import AssetCompileError
from assetbridge.errors import AssetError
from assetbridge.errors import AssetNotCompiledError
from assetbridge.errors import AssetNotFoundError
from assetbridge.errors import ConfigurationError
from assetbridge.errors import EnvironmentSealedError
from assetbridge.models.manifest import Manifest
from assetbridge.models.options import AssetOptions
from assetbridge.modules.environment import AssetEnvironment
from assetbridge.modules.pipeline import AssetPipeline

__all__ = [
    "AssetCompileError",
    "AssetEnvironment",
    "AssetError",
    "AssetNotCompiledError",
    "AssetNotFoundError",
    "AssetOptions",
    "AssetPipeline",
    "ConfigurationError",
    "EnvironmentSealedError",
    "Manifest",
]
