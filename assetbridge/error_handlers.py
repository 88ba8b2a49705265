from quart import current_app

from assetbridge.errors import AssetCompileError
from assetbridge.errors import AssetNotCompiledError


def register_error_handlers(app):
    """Register asset pipeline error handlers with the application."""

    @app.errorhandler(AssetCompileError)
    async def handle_compile_error(e):
        current_app.logger.error(f"Asset compilation failed: {str(e)}", exc_info=True)
        if current_app.debug:
            return f"Asset compilation failed: {str(e)}", 500
        return "An unexpected error occurred", 500

    @app.errorhandler(AssetNotCompiledError)
    async def handle_not_compiled(e):
        current_app.logger.error(
            f"{str(e)}. Run `quart assets precompile` before deploying", exc_info=True
        )
        return "An unexpected error occurred", 500
