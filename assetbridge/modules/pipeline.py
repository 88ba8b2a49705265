"""The asset pipeline Quart extension."""

import asyncio
import logging
from pathlib import Path
from typing import Callable
from typing import Dict
from typing import List
from typing import Mapping
from typing import Optional
from typing import Sequence

from markupsafe import Markup
from quart import g

from assetbridge.cli import assets_cli
from assetbridge.error_handlers import register_error_handlers
from assetbridge.errors import AssetNotCompiledError
from assetbridge.errors import AssetNotFoundError
from assetbridge.errors import ConfigurationError
from assetbridge.models.manifest import MANIFEST_FILENAME
from assetbridge.models.manifest import Manifest
from assetbridge.models.options import AssetOptions
from assetbridge.modules import server
from assetbridge.modules.environment import AssetEnvironment
from assetbridge.modules.precompiler import Precompiler
from assetbridge.modules.tags import css_tag
from assetbridge.modules.tags import join_tags
from assetbridge.modules.tags import js_tag

logger = logging.getLogger(__name__)

EXTENSION_NAME = "assetbridge"
HELPER_NAMES = ("js", "css", "asset_path")


def _manifest_path(options: AssetOptions, root: Path) -> Optional[Path]:
    if options.manifest_file is None:
        return None
    if options.manifest_file.is_absolute():
        return options.manifest_file
    return root / options.manifest_file


async def inject_asset_helpers():
    """Template context processor exposing the helpers set by the middleware."""
    return g.get("asset_helpers") or {}


class AssetPipeline:
    """Wires an asset environment into a Quart application.

    In development (Live-Mode) assets are looked up in the environment and
    compiled on request. In production (Manifest-Mode) every lookup goes
    through the precompiled manifest and nothing is compiled.

    The pipeline can be configured directly::

        pipeline = AssetPipeline(root="/srv/app", paths=["assets/css", "assets/js"])
        pipeline.init_app(app)

    or from ``ASSETS_*`` keys of the app config with ``AssetPipeline(app)``.
    """

    def __init__(self, app=None, **options):
        self.options: Optional[AssetOptions] = None
        self.environment: Optional[AssetEnvironment] = None
        self.manifest: Optional[Manifest] = None
        if options:
            self.configure(AssetOptions.build(**options))
        if app is not None:
            self.init_app(app)

    def configure(self, options: AssetOptions) -> None:
        """Build the environment and, in production, load the manifest."""
        if self.options is not None:
            raise ConfigurationError("Asset pipeline is already configured")

        environment = AssetEnvironment(
            options.root,
            options.paths,
            build_dir=options.build_dir,
            js_compressor=options.js_compressor,
            css_compressor=options.css_compressor,
        )
        environment.register_helper("asset_path", self._environment_asset_path)
        for name, contents in options.bundles.items():
            environment.register_bundle(name, *contents)

        manifest = None
        if options.production:
            manifest_path = _manifest_path(options, environment.root)
            manifest = Manifest.load(manifest_path)
            logger.info(
                f"Loaded asset manifest {manifest_path} with {len(manifest.assets)} assets"
            )

        self.options = options
        self.environment = environment
        self.manifest = manifest

    def _require_configured(self) -> AssetOptions:
        if self.options is None:
            raise ConfigurationError(
                "Asset pipeline is not configured: pass options or call init_app()"
            )
        return self.options

    @property
    def mount_point(self) -> str:
        return self._require_configured().mount_point

    @property
    def asset_host(self) -> Optional[str]:
        return self._require_configured().asset_host

    @property
    def production(self) -> bool:
        return self._require_configured().production

    @property
    def manifest_path(self) -> Optional[Path]:
        """Manifest file location; relative paths are taken from the root."""
        return _manifest_path(self._require_configured(), self.environment.root)

    def _to_asset_url(self, source: str) -> str:
        return f"{self.asset_host or ''}{self.mount_point}/{source}"

    # -- resolution -------------------------------------------------------------

    def resolve(self, logical_path: str) -> Optional[List[str]]:
        """Return the URLs for ``logical_path``, or None if it does not exist.

        In production this is a single digested URL from the manifest and a
        missing entry raises AssetNotCompiledError. In development a bundle
        expands to one ``?body=1`` URL per member, in declared order.
        """
        self._require_configured()
        if self.production:
            digest_path = self.manifest.lookup(logical_path)
            if not digest_path:
                raise AssetNotCompiledError(logical_path)
            return [self._to_asset_url(digest_path)]

        asset = self.environment.find_asset(logical_path)
        if asset is None:
            return None
        return [
            f"{self._to_asset_url(member.logical_path)}?body=1"
            for member in self.environment.expand(asset)
        ]

    # -- view helpers ------------------------------------------------------------

    def css(self, logical_path: str, attributes: Optional[Mapping[str, object]] = None) -> Markup:
        urls = self.resolve(logical_path)
        if urls is None:
            raise AssetNotFoundError(logical_path, "CSS asset")
        return join_tags(css_tag(url, attributes) for url in urls)

    def js(self, logical_path: str, attributes: Optional[Mapping[str, object]] = None) -> Markup:
        urls = self.resolve(logical_path)
        if urls is None:
            raise AssetNotFoundError(logical_path, "Javascript asset")
        return join_tags(js_tag(url, attributes) for url in urls)

    def asset_path(self, logical_path: str) -> str:
        """Return the URL of an asset, or an empty string if it does not exist.

        Always a single URL. A development bundle resolves to the URL of the
        assembled bundle rather than to its members.
        """
        if self.production:
            return self.resolve(logical_path)[0]

        asset = self.environment.find_asset(logical_path)
        if asset is None:
            return ""
        if asset.is_bundle:
            return self._to_asset_url(asset.logical_path)
        return f"{self._to_asset_url(asset.logical_path)}?body=1"

    def get_helper(self, name: str) -> Optional[Callable]:
        """Return the ``js``, ``css`` or ``asset_path`` helper, None for others."""
        if name not in HELPER_NAMES:
            return None
        return getattr(self, name)

    def get_helpers(self) -> Dict[str, Callable]:
        return {name: self.get_helper(name) for name in HELPER_NAMES}

    def _environment_asset_path(self, logical_path: str) -> str:
        # asset_path() as seen from inside templated assets: no ?body=1
        asset = self.environment.find_asset(logical_path)
        if asset is None:
            raise AssetNotFoundError(logical_path, "File")
        if self.production:
            return self.resolve(asset.logical_path)[0]
        return self._to_asset_url(asset.logical_path)

    # -- environment registration --------------------------------------------

    def register_helper(self, name: str, fn: Callable) -> None:
        self._require_configured()
        self.environment.register_helper(name, fn)

    def register_bundle(self, name: str, *contents, filters=None):
        self._require_configured()
        return self.environment.register_bundle(name, *contents, filters=filters)

    # -- request handling ------------------------------------------------------

    def assets(self):
        """Return the before-request middleware.

        In production this seals the environment, so helpers and bundles must
        be registered before calling it.
        """
        options = self._require_configured()
        if options.production:
            self.environment.seal()

        async def asset_middleware():
            g.asset_helpers = self.get_helpers()
            if not options.production and options.precompile:
                await asyncio.to_thread(self.environment.precompile, options.precompile)

        return asset_middleware

    def create_server(self):
        """Return a view function serving assets, to be routed under the mount point."""
        self._require_configured()
        return server.create_handler(self)

    # -- precompilation -----------------------------------------------------------

    @property
    def default_output_dir(self) -> Path:
        if self.manifest_path is not None:
            return self.manifest_path.parent
        return self.environment.root / "public" / "assets"

    def precompile(
        self,
        output_dir=None,
        patterns: Optional[Sequence[str]] = None,
        compress: bool = True,
        clean: bool = True,
    ) -> Manifest:
        """Compile assets into digested files and write the manifest."""
        options = self._require_configured()
        if output_dir is None:
            output_dir = self.default_output_dir
            manifest_file = self.manifest_path
        else:
            output_dir = Path(output_dir)
            manifest_file = output_dir / MANIFEST_FILENAME

        precompiler = Precompiler(
            self.environment,
            output_dir,
            url_prefix=f"{self.asset_host or ''}{self.mount_point}",
            compress=compress,
            manifest_file=manifest_file,
        )
        return precompiler.compile(patterns or options.precompile, clean=clean)

    # -- Quart integration -------------------------------------------------------

    def init_app(self, app):
        """Register the middleware, template helpers, asset route and CLI on ``app``."""
        if self.options is None:
            self.configure(AssetOptions.from_config(app.config))

        app.extensions[EXTENSION_NAME] = self
        app.before_request(self.assets())
        app.context_processor(inject_asset_helpers)

        if self.options.serve:
            app.add_url_rule(
                f"{self.mount_point}/<path:filename>",
                endpoint=f"{EXTENSION_NAME}.asset",
                view_func=self.create_server(),
            )

        register_error_handlers(app)
        app.cli.add_command(assets_cli)

        mode = "production" if self.production else "development"
        app.logger.info(f"Asset pipeline mounted at {self.mount_point} ({mode} mode)")
