"""Live-reload client script injected into served HTML pages."""

from functools import lru_cache
from importlib import resources


@lru_cache(maxsize=1)
def _script_template() -> str:
    return resources.files("hotserve.api").joinpath("livereload.js").read_text(encoding="utf-8")


def render_client_script(ws_port: int, reload_path: str) -> bytes:
    """Render the ``<script>`` block appended to HTML responses."""
    script = (
        _script_template()
        .replace("__WS_PORT__", str(ws_port))
        .replace("__RELOAD_PATH__", reload_path)
    )
    return f"\n<script>\n{script}</script>\n".encode()
