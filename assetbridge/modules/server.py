"""Request handlers serving assets under the pipeline mount point."""

import asyncio
import hashlib
import logging
import mimetypes

from quart import Response
from quart import abort
from quart import request
from quart import send_from_directory

logger = logging.getLogger(__name__)

IMMUTABLE_CACHE_CONTROL = "public, max-age=31536000, immutable"
BODY_FLAG_VALUES = ("1", "true", "yes")


def guess_mimetype(logical_path: str) -> str:
    mimetype, _ = mimetypes.guess_type(logical_path)
    return mimetype or "application/octet-stream"


def _accepts_gzip() -> bool:
    return "gzip" in request.headers.get("Accept-Encoding", "").lower()


def create_handler(pipeline):
    """Return the asset view for ``pipeline``'s mode."""
    if pipeline.production:
        logger.warning(
            "Serving assets from the application in production is not recommended. "
            "Precompile assets and serve them with a static file server or CDN"
        )
        return _manifest_handler(pipeline)
    return _live_handler(pipeline)


def _manifest_handler(pipeline):
    manifest = pipeline.manifest
    directory = pipeline.manifest_path.parent

    async def serve_precompiled_asset(filename):
        """Serve a digested file, never compiling anything."""
        if manifest.has_file(filename):
            digest_path = filename
        else:
            digest_path = manifest.lookup(filename)
        if not digest_path:
            abort(404)

        gzipped = f"{digest_path}.gz"
        if _accepts_gzip() and (directory / gzipped).is_file():
            response = await send_from_directory(
                directory, gzipped, mimetype=guess_mimetype(digest_path)
            )
            response.headers["Content-Encoding"] = "gzip"
        else:
            response = await send_from_directory(directory, digest_path)

        response.headers["Cache-Control"] = IMMUTABLE_CACHE_CONTROL
        response.headers["Vary"] = "Accept-Encoding"
        return response

    return serve_precompiled_asset


def _live_handler(pipeline):
    environment = pipeline.environment

    async def serve_asset(filename):
        """Compile and serve an asset; ``?body=1`` serves one bundle member."""
        body_only = request.args.get("body", "").lower() in BODY_FLAG_VALUES
        asset = environment.find_asset(filename, bundles=not body_only)
        if asset is None:
            abort(404)

        data = await asyncio.to_thread(environment.compile, asset)
        etag = hashlib.md5(data).hexdigest()
        headers = {"Cache-Control": "no-cache", "ETag": f'"{etag}"'}
        if request.if_none_match.contains(etag):
            return Response(b"", status=304, headers=headers)

        return Response(data, mimetype=guess_mimetype(asset.logical_path), headers=headers)

    return serve_asset
