from pathlib import Path

import pytest
import pytest_asyncio

from assetbridge.app import create_app

BASIC_ROOT = Path(__file__).parent / "apps" / "basic"
BASIC_PATHS = ["assets/img", "assets/css", "assets/js", "vendor/css", "vendor/js"]
BASIC_BUNDLES = {"app.js": ["underscore.js", "jquery.js", "libs.js", "app.js"]}


def basic_config(**overrides):
    """Test config for the fixture application under tests/apps/basic."""
    config = {
        "TESTING": True,
        "DEBUG": True,
        "LOG_LEVEL": "DEBUG",
        "ASSETS_ROOT": str(BASIC_ROOT),
        "ASSETS_PATHS": BASIC_PATHS,
        "ASSETS_BUNDLES": BASIC_BUNDLES,
        "ASSETS_MOUNT_POINT": "/assets",
        "ASSETS_HOST": "",
        "ASSETS_PRODUCTION": False,
        "ASSETS_MANIFEST_FILE": "",
    }
    config.update(overrides)
    return config


@pytest.fixture
def basic_root():
    return BASIC_ROOT


@pytest.fixture
def basic_options():
    """Keyword options for an AssetPipeline over the fixture application."""
    return {"root": BASIC_ROOT, "paths": BASIC_PATHS, "bundles": BASIC_BUNDLES}


@pytest.fixture
def asset_tree(tmp_path):
    """Write ``{relative path: content}`` under a temporary root and return it."""

    def _write(files):
        for name, content in files.items():
            target = tmp_path / name
            target.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                target.write_bytes(content)
            else:
                target.write_text(content)
        return tmp_path

    return _write


@pytest_asyncio.fixture
async def app():
    """Create the fixture application in development mode."""
    app = create_app(basic_config())
    async with app.app_context():
        yield app


@pytest_asyncio.fixture
async def client(app):
    """Create a test client for the app."""
    return app.test_client()


@pytest.fixture
def cli_runner():
    """Create a CLI runner for the fixture application."""
    return create_app(basic_config()).test_cli_runner()


@pytest.fixture
def app_config():
    """Return the config factory so tests can override single keys."""
    return basic_config
