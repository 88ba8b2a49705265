"""Asset environment built on webassets.

The environment knows where assets live (an ordered list of search paths),
which named bundles exist, and which helpers templated assets may call. It
starts out mutable; once sealed it answers lookups from a prebuilt index and
rejects further registration.
"""

import fnmatch
import io
import logging
import posixpath
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Callable
from typing import Dict
from typing import Iterator
from typing import List
from typing import Mapping
from typing import Optional
from typing import Sequence
from typing import Tuple

import jinja2
from quart_assets import Bundle
from webassets import Environment as WebassetsEnvironment
from webassets.exceptions import BundleError
from webassets.filter import Filter

from assetbridge.errors import AssetCompileError
from assetbridge.errors import AssetNotFoundError
from assetbridge.errors import ConfigurationError
from assetbridge.errors import EnvironmentSealedError
from assetbridge.modules.decorators import perf_time

logger = logging.getLogger(__name__)

# Sources ending in this suffix are rendered through Jinja2 and served
# under the name without it, e.g. layout.css.jinja2 -> layout.css
TEMPLATE_SUFFIX = ".jinja2"


@dataclass(frozen=True, eq=False)
class Asset:
    """A logical asset: either a single source file or a named bundle."""

    logical_path: str
    source: Optional[Path] = None
    bundle: Optional[Bundle] = None

    @property
    def is_bundle(self) -> bool:
        return self.bundle is not None

    @property
    def is_templated(self) -> bool:
        return self.source is not None and self.source.name.endswith(TEMPLATE_SUFFIX)


class HelperTemplateFilter(Filter):
    """webassets input filter rendering sources with the environment helpers."""

    name = "assetbridge_helpers"

    def __init__(self, environment: "AssetEnvironment"):
        super().__init__()
        self.environment = environment

    def unique(self):
        return id(self.environment)

    def input(self, _in, out, **kw):
        out.write(self.environment.render_template(_in.read()))


def _is_url(value: str) -> bool:
    return "://" in value or value.startswith("//")


def _is_glob(value: str) -> bool:
    return any(char in value for char in "*?[")


def _matches(name: str, patterns: Sequence[str]) -> bool:
    return any(fnmatch.fnmatchcase(name, pattern) for pattern in patterns)


def _strip_template_suffix(name: str) -> str:
    if name.endswith(TEMPLATE_SUFFIX):
        return name[: -len(TEMPLATE_SUFFIX)]
    return name


class AssetEnvironment:
    """Search paths, bundles and helpers for one pipeline instance.

    Args:
        root: Directory the search paths are relative to.
        paths: Search paths, in lookup order (first match wins).
        build_dir: Output directory handed to webassets. Only used to tell
            webassets where bundle outputs would go; bundles are built in memory.
        helpers: Initial helpers exposed to templated assets.
        js_compressor: webassets filter name applied to ``.js`` bundles.
        css_compressor: webassets filter name applied to ``.css`` bundles.
    """

    def __init__(
        self,
        root,
        paths: Sequence[str],
        *,
        build_dir=None,
        helpers: Optional[Mapping[str, Callable]] = None,
        js_compressor: Optional[str] = None,
        css_compressor: Optional[str] = None,
    ):
        self.root = Path(root).resolve()
        self.paths: List[Path] = [(self.root / path).resolve() for path in paths]
        self.build_dir = Path(build_dir) if build_dir else self.root / ".assetbridge"
        self.js_compressor = js_compressor
        self.css_compressor = css_compressor

        self._helpers: Dict[str, Callable] = dict(helpers or {})
        self._overrides: Dict[str, Callable] = {}
        self._bundles: Dict[str, Bundle] = {}
        self._index: Optional[Dict[str, Path]] = None
        self._compiled: Dict[Tuple[str, str], Tuple[tuple, bytes]] = {}
        # one compilation at a time across request threads
        self._lock = threading.RLock()

        self.webassets = WebassetsEnvironment(
            directory=str(self.build_dir), url="/", cache=False, manifest=False
        )
        for path in self.paths:
            if not path.is_dir():
                logger.warning(f"Asset path {path} does not exist")
            self.webassets.append_path(str(path))

        self.jinja_env = jinja2.Environment(
            undefined=jinja2.StrictUndefined,
            keep_trailing_newline=True,
            autoescape=False,
        )

    # -- lifecycle -----------------------------------------------------------

    @property
    def sealed(self) -> bool:
        return self._index is not None

    def seal(self) -> "AssetEnvironment":
        """Freeze the environment and index every logical path.

        Lookups afterwards are served from the index, so files added to the
        search paths later are not seen.
        """
        if self.sealed:
            return self
        self._index = dict(self._iter_sources())
        logger.info(
            f"Sealed asset environment: {len(self._index)} files, "
            f"{len(self._bundles)} bundles"
        )
        return self

    def _check_mutable(self, what: str) -> None:
        if self.sealed:
            raise EnvironmentSealedError(what)

    # -- registration ----------------------------------------------------------

    @property
    def helpers(self) -> Mapping[str, Callable]:
        return MappingProxyType(self._helpers)

    @property
    def bundles(self) -> Mapping[str, Bundle]:
        return MappingProxyType(self._bundles)

    def register_helper(self, name: str, fn: Callable) -> None:
        """Expose ``fn`` as ``name`` to templated assets."""
        self._check_mutable(f"helper [{name}]")
        self._helpers[name] = fn

    def register_bundle(self, name: str, *contents, filters=None) -> Bundle:
        """Register a bundle under the logical name ``name``.

        Contents are source names relative to the search paths (globs are
        allowed) or nested bundles, in the order they should be concatenated.
        """
        self._check_mutable(f"bundle [{name}]")
        if not contents:
            raise ConfigurationError(f"Bundle [{name}] has no contents")

        bundle_filters = list(filters or [])
        compressor = self._compressor_for(name)
        if compressor:
            bundle_filters.append(compressor)

        try:
            bundle = Bundle(
                *[self._wrap_content(item) for item in contents],
                filters=bundle_filters or None,
                output=name,
            )
        except ValueError as e:
            # unknown filter name
            raise ConfigurationError(f"Bundle [{name}]: {e}") from e

        self.webassets.register(name, bundle)
        self._bundles[name] = bundle
        logger.debug(f"Registered bundle {name} with {len(contents)} entries")
        return bundle

    def _compressor_for(self, name: str) -> Optional[str]:
        ext = posixpath.splitext(name)[1]
        if ext == ".js":
            return self.js_compressor
        if ext == ".css":
            return self.css_compressor
        return None

    def _wrap_content(self, item):
        if isinstance(item, Bundle):
            self._attach(item)
            return item
        if not isinstance(item, str) or _is_url(item) or _is_glob(item):
            return item
        source = self._locate(item)
        if source is None or not source.name.endswith(TEMPLATE_SUFFIX):
            return item
        templated = Bundle(
            _strip_template_suffix(item) + TEMPLATE_SUFFIX,
            filters=[HelperTemplateFilter(self)],
        )
        templated.env = self.webassets
        return templated

    def _attach(self, bundle: Bundle) -> None:
        bundle.env = self.webassets
        for item in bundle.contents:
            if isinstance(item, Bundle):
                self._attach(item)

    # -- lookup ----------------------------------------------------------------

    @staticmethod
    def clean_logical_path(logical_path: str) -> Optional[str]:
        """Normalize a logical path, returning None for anything unsafe."""
        if not logical_path or "\x00" in logical_path:
            return None
        name = posixpath.normpath(logical_path.replace("\\", "/").lstrip("/"))
        if name in (".", "") or name == ".." or name.startswith("../"):
            return None
        return name

    def find_asset(self, logical_path: str, bundles: bool = True) -> Optional[Asset]:
        """Find the asset named ``logical_path``.

        Bundles take precedence over files of the same name unless
        ``bundles`` is False.
        """
        name = self.clean_logical_path(logical_path)
        if name is None:
            return None
        if bundles and name in self._bundles:
            return Asset(name, bundle=self._bundles[name])
        source = self._locate(name)
        if source is None:
            return None
        return Asset(name, source=source)

    def _locate(self, name: str) -> Optional[Path]:
        if self._index is not None:
            return self._index.get(name)
        for base in self.paths:
            for candidate in (base / name, base / f"{name}{TEMPLATE_SUFFIX}"):
                if candidate.is_file():
                    return candidate
        return None

    def logical_path_for(self, source) -> Optional[str]:
        """Return the logical path of a source file, or None if outside the paths."""
        source = Path(source).resolve()
        for base in self.paths:
            try:
                relative = source.relative_to(base)
            except ValueError:
                continue
            return _strip_template_suffix(relative.as_posix())
        return None

    def _iter_sources(self) -> Iterator[Tuple[str, Path]]:
        seen = set()
        for base in self.paths:
            if not base.is_dir():
                continue
            for source in sorted(base.rglob("*")):
                relative = source.relative_to(base)
                if not source.is_file() or any(p.startswith(".") for p in relative.parts):
                    continue
                name = _strip_template_suffix(relative.as_posix())
                if name in seen:
                    continue
                seen.add(name)
                yield name, source

    def iter_assets(self, patterns: Sequence[str]) -> Iterator[Asset]:
        """Yield every bundle, then every file, whose logical path matches."""
        for name, bundle in self._bundles.items():
            if _matches(name, patterns):
                yield Asset(name, bundle=bundle)
        for name, source in self._iter_sources():
            if name not in self._bundles and _matches(name, patterns):
                yield Asset(name, source=source)

    def expand(self, asset: Asset) -> List[Asset]:
        """Return the constituent file assets of ``asset`` in declared order.

        A plain file expands to itself. Nested bundles are flattened and a
        file listed twice is only kept at its first position.
        """
        if not asset.is_bundle:
            return [asset]

        members: List[Asset] = []
        seen = set()
        for source in self._bundle_sources(asset.bundle, asset.logical_path):
            name = self.logical_path_for(source)
            if name is None:
                raise AssetCompileError(
                    asset.logical_path, f"bundle member {source} is outside the asset paths"
                )
            if name in seen:
                continue
            seen.add(name)
            members.append(Asset(name, source=source))
        return members

    def _bundle_sources(self, bundle: Bundle, logical_path: str) -> Iterator[Path]:
        try:
            contents = bundle.resolve_contents(force=True)
        except (BundleError, OSError) as e:
            raise AssetCompileError(logical_path, str(e)) from e
        for _, resolved in contents:
            if isinstance(resolved, Bundle):
                yield from self._bundle_sources(resolved, logical_path)
            elif isinstance(resolved, str) and not _is_url(resolved):
                yield Path(resolved)

    # -- compilation -------------------------------------------------------------

    def template_globals(self) -> Dict[str, Callable]:
        return {**self._helpers, **self._overrides}

    @contextmanager
    def helper_overrides(self, **helpers: Callable):
        """Temporarily replace helpers while rendering, e.g. during precompile."""
        previous = self._overrides
        self._overrides = {**previous, **helpers}
        try:
            yield self
        finally:
            self._overrides = previous

    def render_template(self, text: str) -> str:
        return self.jinja_env.from_string(text).render(**self.template_globals())

    def render(self, asset: Asset) -> bytes:
        """Compile ``asset`` from its sources, bypassing the compile cache."""
        try:
            if asset.is_bundle:
                buffer = io.StringIO()
                asset.bundle.build(force=True, output=buffer)
                return buffer.getvalue().encode("utf-8")
            if asset.is_templated:
                text = asset.source.read_text(encoding="utf-8")
                return self.render_template(text).encode("utf-8")
            return asset.source.read_bytes()
        except (
            BundleError,
            jinja2.TemplateError,
            OSError,
            UnicodeDecodeError,
            AssetNotFoundError,
        ) as e:
            raise AssetCompileError(asset.logical_path, str(e)) from e

    def compile(self, asset: Asset) -> bytes:
        """Compile ``asset``, reusing the previous output if no source changed."""
        key = ("bundle" if asset.is_bundle else "file", asset.logical_path)
        with self._lock:
            sources = (
                list(self._bundle_sources(asset.bundle, asset.logical_path))
                if asset.is_bundle
                else [asset.source]
            )
            try:
                signature = tuple((str(p), p.stat().st_mtime_ns) for p in sources)
            except OSError as e:
                raise AssetCompileError(asset.logical_path, str(e)) from e

            cached = self._compiled.get(key)
            if cached is not None and cached[0] == signature:
                return cached[1]

            data = self.render(asset)
            self._compiled[key] = (signature, data)
            return data

    @perf_time(label="Asset precompile pass")
    def precompile(self, patterns: Sequence[str]) -> List[str]:
        """Compile every bundle and templated file matching ``patterns``.

        Returns the logical paths that were compiled. Plain files need no
        compilation and are skipped. Concurrent passes run one after another.
        """
        compiled = []
        with self._lock:
            for asset in self.iter_assets(patterns):
                if asset.is_bundle or asset.is_templated:
                    self.compile(asset)
                    compiled.append(asset.logical_path)
        return compiled
