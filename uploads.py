"""
Media uploads: multipart files are written under the upload directory with
generated names and served back with byte-range support.
"""
import logging
import os
import re
import secrets
import shutil
import time
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from fastapi import APIRouter, Depends, File, Header, Request, Response, UploadFile
from fastapi.responses import StreamingResponse

import config
from errors import BadInput, NotFound

logger = logging.getLogger(__name__)

router = APIRouter()

CHUNK_SIZE = 64 * 1024

CONTENT_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".m4a": "audio/mp4",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".mov": "video/quicktime",
    ".pdf": "application/pdf",
    ".txt": "text/plain",
}

_RANGE = re.compile(r"^bytes=(\d+)-(\d*)$")


def get_upload_dir() -> Path:
    return Path(config.UPLOAD_DIR)


def content_type_for(filename: str) -> str:
    return CONTENT_TYPES.get(os.path.splitext(filename)[1].lower(), "application/octet-stream")


def check_original_name(name: str) -> None:
    if not name or "/" in name or "\\" in name or name in (".", "..") or "\x00" in name:
        raise BadInput(f"Invalid file name: {name!r}")


def storage_name(original_name: str) -> str:
    """<epoch-ms>-<random><ext>, e.g. 1718000000000-482913377.png"""
    extension = os.path.splitext(original_name)[1].lower()
    return f"{int(time.time() * 1000)}-{secrets.randbelow(10 ** 9)}{extension}"


def save_upload(upload_dir: Path, upload: UploadFile) -> dict:
    upload_dir.mkdir(parents=True, exist_ok=True)
    name = storage_name(upload.filename)
    target = upload_dir / name
    try:
        with open(target, "xb") as out:
            shutil.copyfileobj(upload.file, out, CHUNK_SIZE)
            size = out.tell()
    except OSError:
        target.unlink(missing_ok=True)
        raise
    return {"filename": name, "originalName": upload.filename, "size": size}


def resolve_upload_path(upload_dir: Path, filename: str) -> Path:
    """Resolve `filename` inside `upload_dir`, refusing anything that escapes it."""
    root = upload_dir.resolve()
    try:
        candidate = (root / filename).resolve()
    except (OSError, ValueError):
        raise BadInput("Invalid file path")
    if candidate == root or not candidate.is_relative_to(root):
        raise BadInput("Invalid file path")
    return candidate


def parse_range(header: str, size: int) -> Optional[Tuple[int, int]]:
    """Parse `bytes=start-end` (end optional); None when unsatisfiable."""
    match = _RANGE.match(header.strip())
    if not match:
        return None
    start = int(match.group(1))
    end = int(match.group(2)) if match.group(2) else size - 1
    if start > end or end >= size:
        return None
    return start, end


def iter_file(path: Path, start: int, length: int) -> Iterator[bytes]:
    with open(path, "rb") as f:
        f.seek(start)
        remaining = length
        while remaining > 0:
            chunk = f.read(min(CHUNK_SIZE, remaining))
            if not chunk:
                break
            remaining -= len(chunk)
            yield chunk


@router.post("")
def upload_files(request: Request, files: Optional[List[UploadFile]] = File(None),
                 upload_dir: Path = Depends(get_upload_dir)):
    if not files:
        raise BadInput("No files uploaded")
    for upload in files:
        check_original_name(upload.filename)

    base_url = str(request.base_url).rstrip("/")
    stored = []
    for upload in files:
        meta = save_upload(upload_dir, upload)
        meta["url"] = f"{base_url}/uploads/{meta['filename']}"
        stored.append(meta)
    logger.info("Stored %d uploaded file(s)", len(stored))
    return {"message": "Files uploaded successfully", "files": stored}


@router.get("/{filename:path}")
def serve_file(filename: str, range_header: Optional[str] = Header(None, alias="Range"),
               upload_dir: Path = Depends(get_upload_dir)):
    path = resolve_upload_path(upload_dir, filename)
    if not path.is_file():
        raise NotFound("File not found")

    size = path.stat().st_size
    content_type = content_type_for(path.name)

    if range_header:
        span = parse_range(range_header, size)
        if span is None:
            return Response(status_code=416, headers={"Content-Range": f"bytes */{size}"})
        start, end = span
        length = end - start + 1
        headers = {
            "Content-Range": f"bytes {start}-{end}/{size}",
            "Accept-Ranges": "bytes",
            "Content-Length": str(length),
        }
        return StreamingResponse(iter_file(path, start, length), status_code=206,
                                 media_type=content_type, headers=headers)

    headers = {"Accept-Ranges": "bytes", "Content-Length": str(size)}
    return StreamingResponse(iter_file(path, 0, size), media_type=content_type, headers=headers)
