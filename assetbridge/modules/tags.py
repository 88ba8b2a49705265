"""HTML tags for stylesheet and script assets."""

from typing import Iterable
from typing import Mapping
from typing import Optional

from markupsafe import Markup
from markupsafe import escape

CSS_DEFAULT_ATTRIBUTES = {"type": "text/css", "rel": "stylesheet", "media": "screen"}


def _render_attributes(attributes: Mapping[str, object]) -> str:
    return "".join(f" {name}='{escape(value)}'" for name, value in attributes.items())


def css_tag(url: str, attributes: Optional[Mapping[str, object]] = None) -> Markup:
    """Render a stylesheet link; caller attributes replace the defaults in place."""
    merged = {"type": CSS_DEFAULT_ATTRIBUTES["type"], "href": url}
    merged.update(CSS_DEFAULT_ATTRIBUTES)
    merged.update(attributes or {})
    # href always points at the asset
    merged["href"] = url
    return Markup(f"<link{_render_attributes(merged)}>")


def js_tag(url: str, attributes: Optional[Mapping[str, object]] = None) -> Markup:
    merged = {"src": url, **(attributes or {})}
    merged["src"] = url
    return Markup(f"<script{_render_attributes(merged)}></script>")


def join_tags(tags: Iterable[Markup]) -> Markup:
    return Markup("\n").join(tags)
