from assetbridge.models.manifest import Manifest
from assetbridge.models.manifest import ManifestEntry
from assetbridge.models.options import AssetOptions

__all__ = ["AssetOptions", "Manifest", "ManifestEntry"]
