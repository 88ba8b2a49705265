"""Integration tests rendering and serving the fixture application."""

import gzip
import re

import pytest
import pytest_asyncio

from assetbridge.app import create_app
from assetbridge.modules.pipeline import AssetPipeline


def _script_sources(html):
    return re.findall(r"<script src='([^']+)'></script>", html)


def _stylesheet_hrefs(html):
    return re.findall(r"<link type='text/css' href='([^']+)'", html)


class TestDevelopmentApp:
    """Live mode: assets compiled on request."""

    @pytest.mark.asyncio
    async def test_index_renders_member_tags(self, client):
        response = await client.get("/")
        assert response.status_code == 200
        html = await response.get_data(as_text=True)

        assert _stylesheet_hrefs(html) == ["/assets/layout.css?body=1"]
        assert _script_sources(html) == [
            "/assets/underscore.js?body=1",
            "/assets/jquery.js?body=1",
            "/assets/libs.js?body=1",
            "/assets/app.js?body=1",
        ]
        assert "<img src=\"/assets/background.png?body=1\">" in html

    @pytest.mark.asyncio
    async def test_serves_templated_stylesheet(self, client):
        response = await client.get("/assets/layout.css?body=1")
        assert response.status_code == 200
        assert response.mimetype == "text/css"
        assert response.headers["Cache-Control"] == "no-cache"
        body = await response.get_data(as_text=True)
        assert "url(/assets/background.png) no-repeat" in body

    @pytest.mark.asyncio
    async def test_body_flag_serves_single_member(self, client):
        response = await client.get("/assets/app.js?body=1")
        body = await response.get_data(as_text=True)
        assert "// app.js" in body
        assert "// jquery.js" not in body

    @pytest.mark.asyncio
    async def test_serves_bundle(self, client):
        response = await client.get("/assets/app.js")
        assert response.status_code == 200
        body = await response.get_data(as_text=True)
        positions = [body.index(f"// {name}") for name in ("underscore.js", "jquery.js", "libs.js", "app.js")]
        assert positions == sorted(positions)

    @pytest.mark.asyncio
    async def test_serves_binary_file(self, client, basic_root):
        response = await client.get("/assets/background.png")
        assert response.status_code == 200
        assert response.mimetype == "image/png"
        assert await response.get_data() == (basic_root / "assets/img/background.png").read_bytes()

    @pytest.mark.asyncio
    async def test_missing_asset(self, client):
        response = await client.get("/assets/missing.js")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_path_traversal(self, client):
        response = await client.get("/assets/..%2F..%2Fconftest.py")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_etag_not_modified(self, client):
        response = await client.get("/assets/libs.js?body=1")
        etag = response.headers["ETag"]

        cached = await client.get("/assets/libs.js?body=1", headers={"If-None-Match": etag})
        assert cached.status_code == 304
        assert await cached.get_data() == b""

    @pytest.mark.asyncio
    async def test_helpers_registered(self, app):
        pipeline = app.extensions["assetbridge"]
        assert isinstance(pipeline, AssetPipeline)
        assert not pipeline.production


class TestCompileErrors:
    @pytest_asyncio.fixture
    async def broken_client(self, app_config):
        app = create_app(app_config(ASSETS_BUNDLES={"broken.js": ["app.js", "missing.js"]}))
        async with app.app_context():
            yield app.test_client()

    @pytest.mark.asyncio
    async def test_broken_bundle_returns_500(self, broken_client):
        response = await broken_client.get("/assets/app.js?body=1")
        assert response.status_code == 500
        body = await response.get_data(as_text=True)
        assert "Failed to compile asset [broken.js]" in body

    @pytest.mark.asyncio
    async def test_error_details_hidden_outside_debug(self, app_config):
        app = create_app(
            app_config(DEBUG=False, ASSETS_BUNDLES={"broken.js": ["missing.js"]})
        )
        response = await app.test_client().get("/assets/app.js?body=1")
        assert response.status_code == 500
        assert await response.get_data(as_text=True) == "An unexpected error occurred"


class TestProductionApp:
    """Manifest mode: digested files served from the precompiled output."""

    @pytest.fixture
    def output_dir(self, tmp_path, basic_options):
        output_dir = tmp_path / "public" / "assets"
        AssetPipeline(**basic_options).precompile(output_dir=output_dir)
        return output_dir

    @pytest.fixture
    def production_app(self, app_config, output_dir):
        return create_app(
            app_config(
                DEBUG=False,
                ASSETS_PRODUCTION=True,
                ASSETS_MANIFEST_FILE=str(output_dir / "manifest.json"),
            )
        )

    @pytest.fixture
    def manifest(self, production_app):
        return production_app.extensions["assetbridge"].manifest

    @pytest.mark.asyncio
    async def test_index_renders_digested_tags(self, production_app, manifest):
        response = await production_app.test_client().get("/")
        html = await response.get_data(as_text=True)

        assert _script_sources(html) == [f"/assets/{manifest.assets['app.js']}"]
        assert _stylesheet_hrefs(html) == [f"/assets/{manifest.assets['layout.css']}"]
        assert f"/assets/{manifest.assets['background.png']}" in html
        assert "body=1" not in html

    @pytest.mark.asyncio
    async def test_serves_digested_file(self, production_app, manifest, output_dir):
        digest_path = manifest.assets["layout.css"]
        response = await production_app.test_client().get(f"/assets/{digest_path}")

        assert response.status_code == 200
        assert response.headers["Cache-Control"] == "public, max-age=31536000, immutable"
        assert "Content-Encoding" not in response.headers
        assert await response.get_data() == (output_dir / digest_path).read_bytes()

    @pytest.mark.asyncio
    async def test_serves_gzip_copy(self, production_app, manifest, output_dir):
        digest_path = manifest.assets["app.js"]
        response = await production_app.test_client().get(
            f"/assets/{digest_path}", headers={"Accept-Encoding": "gzip, deflate"}
        )

        assert response.status_code == 200
        assert response.headers["Content-Encoding"] == "gzip"
        assert response.headers["Vary"] == "Accept-Encoding"
        data = await response.get_data()
        assert gzip.decompress(data) == (output_dir / digest_path).read_bytes()

    @pytest.mark.asyncio
    async def test_logical_name_resolves_through_manifest(self, production_app, output_dir):
        response = await production_app.test_client().get("/assets/reset.css")
        assert response.status_code == 200
        assert b"margin: 0" in await response.get_data()

    @pytest.mark.asyncio
    async def test_unknown_file(self, production_app):
        response = await production_app.test_client().get("/assets/missing-123.js")
        assert response.status_code == 404

    def test_environment_is_sealed(self, production_app):
        assert production_app.extensions["assetbridge"].environment.sealed
