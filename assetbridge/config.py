import os
from typing import List

from dotenv import load_dotenv

# Load environment variables from a .env file if it exists
load_dotenv()


def env_bool(key: str, default: bool = False) -> bool:
    """Parse boolean from environment variable."""
    value = os.environ.get(key, str(default)).lower()
    return value in ("true", "1", "yes", "on")


def env_list(key: str, default: List[str]) -> List[str]:
    """Parse a comma-separated list from environment variable."""
    value = os.environ.get(key)
    if not value:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


class Config:
    DEBUG = env_bool("DEBUG", False)
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    TEMPLATE_FOLDER = os.environ.get("TEMPLATE_FOLDER", "templates")

    # Asset pipeline
    ASSETS_ROOT = os.environ.get("ASSETS_ROOT", os.getcwd())
    ASSETS_PATHS = env_list(
        "ASSETS_PATHS",
        ["assets/images", "assets/css", "assets/js", "vendor/css", "vendor/js"],
    )
    ASSETS_MOUNT_POINT = os.environ.get("ASSETS_MOUNT_POINT", "/assets")
    # e.g. //assets.example.com to have helpers emit CDN urls
    ASSETS_HOST = os.environ.get("ASSETS_HOST", "")
    ASSETS_PRODUCTION = env_bool("ASSETS_PRODUCTION", False)
    ASSETS_MANIFEST_FILE = os.environ.get(
        "ASSETS_MANIFEST_FILE", "public/assets/manifest.json"
    )
    ASSETS_PRECOMPILE = env_list("ASSETS_PRECOMPILE", ["*", "*/**"])
    ASSETS_JS_COMPRESSOR = os.environ.get("ASSETS_JS_COMPRESSOR", "")
    ASSETS_CSS_COMPRESSOR = os.environ.get("ASSETS_CSS_COMPRESSOR", "")
    # Disable when a static server or CDN serves the precompiled files
    ASSETS_SERVE = env_bool("ASSETS_SERVE", True)
