import os
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import FileResponse, PlainTextResponse

from logging_config import get_logger

logger = get_logger(__name__)

static_router = APIRouter(tags=["static"])

MIME_TYPES = {
    ".html": "text/html",
    ".js": "text/javascript",
    ".css": "text/css",
    ".json": "application/json",
    ".svg": "image/svg+xml",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".ico": "image/x-icon",
}
DEFAULT_MIME_TYPE = "application/octet-stream"


def content_type_for(path: Path) -> str:
    return MIME_TYPES.get(path.suffix.lower(), DEFAULT_MIME_TYPE)


def resolve_public_path(public_dir: os.PathLike, request_path: str) -> Optional[Path]:
    """Map a URL path onto a file under ``public_dir``.

    Returns None when the result would land outside the public root.
    """
    safe_path = "/index.html" if request_path in ("", "/") else request_path
    root = Path(public_dir).resolve()
    candidate = (root / safe_path.lstrip("/")).resolve()
    if candidate != root and root not in candidate.parents:
        return None
    return candidate


@static_router.get("/{path:path}")
async def serve_file(path: str, request: Request):
    file_path = resolve_public_path(request.app.state.public_dir, "/" + path)
    if file_path is None:
        logger.warning(f"Rejected path outside public root: {path!r}")
        return PlainTextResponse("Forbidden", status_code=403)

    if not file_path.is_file():
        logger.debug(f"Static file not found: {path!r}")
        return PlainTextResponse("Not found", status_code=404)

    return FileResponse(file_path, media_type=content_type_for(file_path))
