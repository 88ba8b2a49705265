from pathlib import Path
from typing import Any
from typing import Dict
from typing import List
from typing import Mapping
from typing import Optional

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import ValidationError
from pydantic import field_validator
from pydantic import model_validator
from pydantic_core import PydanticCustomError

from assetbridge.errors import ConfigurationError

DEFAULT_MOUNT_POINT = "/assets"
DEFAULT_PRECOMPILE = ["*", "*/**"]
DISABLED_VALUES = ("false", "off", "no", "0")

# Quart config key -> option name
CONFIG_KEYS = {
    "ASSETS_ROOT": "root",
    "ASSETS_PATHS": "paths",
    "ASSETS_MOUNT_POINT": "mount_point",
    "ASSETS_HOST": "asset_host",
    "ASSETS_PRODUCTION": "production",
    "ASSETS_MANIFEST_FILE": "manifest_file",
    "ASSETS_PRECOMPILE": "precompile",
    "ASSETS_BUNDLES": "bundles",
    "ASSETS_JS_COMPRESSOR": "js_compressor",
    "ASSETS_CSS_COMPRESSOR": "css_compressor",
    "ASSETS_BUILD_DIR": "build_dir",
    "ASSETS_SERVE": "serve",
}


def normalize_mount_point(mount_point: Optional[str]) -> str:
    """Return the mount point with exactly one leading slash and no trailing slash.

    An empty mount point (or a bare ``/``) falls back to ``/assets``.
    """
    name = (mount_point or "").strip().strip("/")
    if not name:
        return DEFAULT_MOUNT_POINT
    return f"/{name}"


def _split_list(value: Any) -> Any:
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


class AssetOptions(BaseModel):
    """Validated asset pipeline configuration. Immutable once built."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    root: Path = Field(description="Directory that anchors the asset search paths")
    paths: List[str] = Field(description="Search paths relative to root, in order")
    mount_point: str = Field(
        default=DEFAULT_MOUNT_POINT, description="URL prefix assets are served under"
    )
    asset_host: Optional[str] = Field(
        default=None, description="Host prepended to every asset URL, e.g. a CDN"
    )
    production: bool = Field(default=False, description="Serve from the manifest")
    manifest_file: Optional[Path] = Field(
        default=None, description="Precompiled manifest, required in production"
    )
    precompile: List[str] = Field(
        default_factory=lambda: list(DEFAULT_PRECOMPILE),
        description="Glob patterns compiled on each development request, empty to disable",
    )
    bundles: Dict[str, List[str]] = Field(
        default_factory=dict, description="Bundle name -> ordered source names"
    )
    js_compressor: Optional[str] = Field(
        default=None, description="webassets filter applied to .js bundles"
    )
    css_compressor: Optional[str] = Field(
        default=None, description="webassets filter applied to .css bundles"
    )
    build_dir: Optional[Path] = Field(
        default=None, description="Scratch directory for webassets output"
    )
    serve: bool = Field(default=True, description="Mount the asset route on init_app")

    @field_validator("root")
    @classmethod
    def validate_root(cls, v: Path) -> Path:
        if not v.is_dir():
            raise PydanticCustomError(
                "root_missing",
                "Asset root [{root}] does not exist",
                {"root": str(v)},
            )
        return v

    @field_validator("paths", mode="before")
    @classmethod
    def split_paths(cls, v):
        return _split_list(v)

    @field_validator("paths")
    @classmethod
    def validate_paths(cls, v: List[str]) -> List[str]:
        if not v:
            raise PydanticCustomError(
                "paths_missing",
                "Asset paths are missing, e.g. ['assets/css', 'assets/js']",
            )
        return v

    @field_validator("mount_point", mode="before")
    @classmethod
    def validate_mount_point(cls, v):
        return normalize_mount_point(v)

    @field_validator("asset_host", "js_compressor", "css_compressor", mode="before")
    @classmethod
    def empty_to_none(cls, v):
        return v or None

    @field_validator("manifest_file", "build_dir", mode="before")
    @classmethod
    def empty_path_to_none(cls, v):
        return v or None

    @field_validator("precompile", mode="before")
    @classmethod
    def split_precompile(cls, v):
        # False, an explicit empty list or "false" turn the per-request pass off
        if v is False or v == []:
            return []
        items = _split_list(v)
        if isinstance(items, (list, tuple)) and len(items) == 1:
            if str(items[0]).strip().lower() in DISABLED_VALUES:
                return []
        return items or list(DEFAULT_PRECOMPILE)

    @model_validator(mode="after")
    def validate_production(self):
        if self.production and self.manifest_file is None:
            raise PydanticCustomError(
                "manifest_missing",
                "Running in production but no manifest file was configured",
            )
        return self

    @classmethod
    def build(cls, **options) -> "AssetOptions":
        """Validate ``options``, raising ConfigurationError instead of ValidationError."""
        try:
            return cls(**options)
        except ValidationError as e:
            raise ConfigurationError(_describe(e)) from e

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "AssetOptions":
        """Build options from ``ASSETS_*`` keys of a Quart config mapping."""
        options = {
            name: config[key]
            for key, name in CONFIG_KEYS.items()
            if config.get(key) is not None
        }
        return cls.build(**options)


def _describe(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        loc = ".".join(str(item) for item in err["loc"])
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(parts)
