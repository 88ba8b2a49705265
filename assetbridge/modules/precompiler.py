"""Compile assets into digested files and a manifest for production."""

import gzip
import hashlib
import logging
import mimetypes
import posixpath
import shutil
from datetime import datetime
from datetime import timezone
from pathlib import Path
from typing import Dict
from typing import Optional
from typing import Sequence
from typing import Set

from assetbridge.errors import AssetCompileError
from assetbridge.errors import AssetNotFoundError
from assetbridge.errors import ConfigurationError
from assetbridge.models.manifest import MANIFEST_FILENAME
from assetbridge.models.manifest import Manifest
from assetbridge.models.manifest import ManifestEntry
from assetbridge.models.options import DEFAULT_PRECOMPILE
from assetbridge.modules.decorators import perf_time
from assetbridge.modules.environment import Asset
from assetbridge.modules.environment import AssetEnvironment

logger = logging.getLogger(__name__)

COMPRESSIBLE_TYPES = {
    "application/javascript",
    "application/json",
    "application/xml",
    "image/svg+xml",
}


def digest_name(logical_path: str, digest: str) -> str:
    """Insert ``digest`` before the extension: app.css -> app-<digest>.css."""
    stem, ext = posixpath.splitext(logical_path)
    return f"{stem}-{digest}{ext}"


def is_compressible(logical_path: str) -> bool:
    mimetype, _ = mimetypes.guess_type(logical_path)
    if mimetype is None:
        return False
    return mimetype.startswith("text/") or mimetype in COMPRESSIBLE_TYPES


class Precompiler:
    """Writes every matching asset to ``output_dir`` under its digested name.

    Args:
        environment: The environment to compile from.
        output_dir: Directory receiving digested files.
        url_prefix: Host and mount point that ``asset_path()`` URLs inside
            templated assets are built from.
        compress: Also write a gzip copy of text assets.
        manifest_file: Where to write the manifest, defaults to
            ``output_dir/manifest.json``.
    """

    def __init__(
        self,
        environment: AssetEnvironment,
        output_dir,
        url_prefix: str = "/assets",
        compress: bool = True,
        manifest_file=None,
    ):
        self.environment = environment
        self.output_dir = Path(output_dir).resolve()
        self.url_prefix = url_prefix
        self.compress = compress
        self.manifest_file = (
            Path(manifest_file) if manifest_file else self.output_dir / MANIFEST_FILENAME
        )
        self._digests: Dict[str, str] = {}
        self._in_progress: Set[str] = set()
        self._manifest = Manifest(assets={})

    def _check_output_dir(self) -> None:
        # cleaning must never remove the sources
        for protected in [self.environment.root, *self.environment.paths]:
            if protected == self.output_dir or protected.is_relative_to(self.output_dir):
                raise ConfigurationError(
                    f"Refusing to clean output directory {self.output_dir}: "
                    f"it contains asset sources ({protected})"
                )

    @perf_time(label="Asset precompile", log_function=logger.info)
    def compile(
        self, patterns: Optional[Sequence[str]] = None, clean: bool = True
    ) -> Manifest:
        """Compile every asset matching ``patterns`` and write the manifest."""
        patterns = patterns or DEFAULT_PRECOMPILE
        if clean and self.output_dir.exists():
            self._check_output_dir()
            logger.info(f"Removing previous build in {self.output_dir}")
            shutil.rmtree(self.output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

        self._digests = {}
        self._manifest = Manifest(assets={})
        with self.environment.helper_overrides(asset_path=self._digest_url):
            for asset in list(self.environment.iter_assets(patterns)):
                self._compile_asset(asset)

        self._manifest.save(self.manifest_file)
        if not self._manifest.files:
            logger.info("No assets to compile")
        else:
            logger.info(
                f"Compiled {len(self._manifest.files)} assets into {self.output_dir}"
            )
        return self._manifest

    def _digest_url(self, logical_path: str) -> str:
        asset = self.environment.find_asset(logical_path)
        if asset is None:
            raise AssetNotFoundError(logical_path, "File")
        return f"{self.url_prefix}/{self._compile_asset(asset)}"

    def _compile_asset(self, asset: Asset) -> str:
        name = asset.logical_path
        if name in self._digests:
            return self._digests[name]
        if name in self._in_progress:
            raise AssetCompileError(name, "circular asset_path() reference")

        self._in_progress.add(name)
        try:
            data = self.environment.render(asset)
        finally:
            self._in_progress.discard(name)

        digest = hashlib.md5(data).hexdigest()
        digest_path = digest_name(name, digest)
        target = self.output_dir / digest_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        if self.compress and is_compressible(name):
            with gzip.open(f"{target}.gz", "wb", compresslevel=9) as fh:
                fh.write(data)

        self._digests[name] = digest_path
        self._manifest.assets[name] = digest_path
        self._manifest.files[digest_path] = ManifestEntry(
            logical_path=name,
            mtime=datetime.now(timezone.utc).isoformat(),
            size=len(data),
            digest=digest,
        )
        logger.debug(f"Compiled {name} -> {digest_path}")
        return digest_path
