"""Browser page for entering a calendar URL and previewing its feed.

The page compresses the URL with lz-string, requests /api/convert and
lists the returned items. Edits are debounced and a newer edit aborts the
request still in flight.
"""
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

PREVIEW_DEBOUNCE_MS = 500
PREVIEW_ITEM_LIMIT = 25
LZ_STRING_SCRIPT_URL = "https://cdn.jsdelivr.net/npm/lz-string@1.5.0/libs/lz-string.min.js"

TEMPLATE_DIR = Path(__file__).parent / "templates"


def get_environment() -> Environment:
    """Return a Jinja environment for the renderer templates."""
    return Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=select_autoescape(["html", "xml", "html.j2"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )


def render_preview_page() -> str:
    """Render the HTML of the preview page."""
    template = get_environment().get_template("preview.html.j2")
    return template.render(
        lz_string_script_url=LZ_STRING_SCRIPT_URL,
        debounce_ms=PREVIEW_DEBOUNCE_MS,
        item_limit=PREVIEW_ITEM_LIMIT,
    )
