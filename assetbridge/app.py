import os

from quart import Quart
from quart import render_template

from assetbridge.modules.logging_helper import LoggingHelper
from assetbridge.modules.pipeline import AssetPipeline


def create_app(config=None):
    """Create a Quart application that renders pages through the asset pipeline."""
    app = Quart(__name__, static_folder=None)

    # Load default configuration
    app.config.from_object("assetbridge.config.Config")

    # Apply config overrides
    if config:
        if isinstance(config, dict):
            app.config.update(config)
        else:
            app.config.from_object(config)

    # Templates live next to the assets, not inside this package
    app.template_folder = os.path.join(
        str(app.config["ASSETS_ROOT"]), app.config["TEMPLATE_FOLDER"]
    )

    LoggingHelper(app)
    AssetPipeline(app)

    @app.route("/")
    async def index():
        return await render_template("index.html")

    return app
