"""Mock Drive multipart upload endpoint."""

import json
import logging
import random
import time
import uuid
from pathlib import Path
from typing import Optional

from flask import Blueprint, jsonify, request

from .config import MockServerConfig

UPLOAD_ENDPOINT = "/upload/drive/v3/files"

upload_bp = Blueprint("drive_upload", __name__)

upload_logger = logging.getLogger("clinic_intake.mock_server.upload")

_config: Optional[MockServerConfig] = None
_uploads: dict[str, dict] = {}


class MultipartParseError(ValueError):
    """Raised when an upload body is not a two-part multipart/related message."""


def drive_error(code: int, message: str, reason: str):
    """Build a Drive-style JSON error response.

    Args:
        code: HTTP status code
        message: Human-readable message
        reason: Short machine-readable reason

    Returns:
        Tuple of (Response, status code)
    """
    upload_logger.warning(f"Upload rejected ({code} {reason}): {message}")
    body = {
        "error": {
            "code": code,
            "message": message,
            "errors": [{"reason": reason, "message": message}],
        }
    }
    return jsonify(body), code


def parse_multipart_related(body: bytes, boundary: str) -> tuple[dict, bytes]:
    """Split a multipart/related upload into its metadata and file parts.

    Args:
        body: Raw request body
        boundary: Boundary from the Content-Type header

    Returns:
        Tuple of (metadata dict, file bytes)

    Raises:
        MultipartParseError: If the body does not hold a JSON part and a file part
    """
    delimiter = f"--{boundary}".encode()
    parts = []
    for chunk in body.split(delimiter)[1:]:
        if chunk.startswith(b"--"):
            break
        headers, separator, content = chunk.partition(b"\r\n\r\n")
        if not separator:
            raise MultipartParseError("Part without header separator")
        if content.endswith(b"\r\n"):
            content = content[:-2]
        parts.append((headers.decode("latin-1").lower(), content))

    if len(parts) != 2:
        raise MultipartParseError(f"Expected 2 parts, found {len(parts)}")

    metadata_headers, metadata_bytes = parts[0]
    if "application/json" not in metadata_headers:
        raise MultipartParseError("First part must be application/json metadata")
    try:
        metadata = json.loads(metadata_bytes.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MultipartParseError(f"Metadata is not valid JSON: {e}") from e
    if not isinstance(metadata, dict):
        raise MultipartParseError("Metadata must be a JSON object")

    return metadata, parts[1][1]


def _guess_mime_type(name: str) -> str:
    return "application/pdf" if name.lower().endswith(".pdf") else "application/octet-stream"


def _authorized() -> bool:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme != "Bearer" or not token:
        return False
    if _config and _config.required_token is not None:
        return token == _config.required_token
    return True


@upload_bp.route(UPLOAD_ENDPOINT, methods=["POST"])
def handle_upload():
    """Accept a multipart upload and store the file.

    Returns the new file resource as JSON, or a Drive-style error object.
    """
    if not _authorized():
        return drive_error(401, "Request had invalid authentication credentials", "authError")

    if request.mimetype != "multipart/related":
        return drive_error(
            400, f"Unsupported content type: {request.mimetype}", "badContent"
        )
    boundary = request.mimetype_params.get("boundary")
    if not boundary:
        return drive_error(400, "Missing multipart boundary", "badContent")

    try:
        metadata, content = parse_multipart_related(request.get_data(), boundary)
    except MultipartParseError as e:
        return drive_error(400, str(e), "badContent")

    name = metadata.get("name")
    parents = [parent for parent in metadata.get("parents") or [] if parent]
    if not name or not isinstance(name, str):
        return drive_error(400, "File metadata must include a name", "required")
    if not parents:
        return drive_error(400, "File metadata must include a parent folder", "required")
    folder_id = str(parents[0])
    if _config and _config.allowed_folders and folder_id not in _config.allowed_folders:
        return drive_error(404, f"File not found: {folder_id}.", "notFound")

    if _config and _config.response_delay_ms > 0:
        upload_logger.debug(f"Simulating network delay: {_config.response_delay_ms}ms")
        time.sleep(_config.response_delay_ms / 1000.0)

    if _config and random.random() < _config.failure_rate:
        return drive_error(503, "Backend Error", "backendError")

    file_id = uuid.uuid4().hex
    storage_dir = Path(_config.storage_dir if _config else "mocks/uploads") / folder_id
    storage_dir.mkdir(parents=True, exist_ok=True)
    stored_path = storage_dir / f"{file_id}_{Path(name).name}"
    stored_path.write_bytes(content)

    _uploads[file_id] = {"name": name, "folder_id": folder_id, "path": str(stored_path)}
    upload_logger.info(
        f"Stored upload {file_id}: {name} ({len(content)} bytes) in folder {folder_id}"
    )

    return (
        jsonify(
            {
                "kind": "drive#file",
                "id": file_id,
                "name": name,
                "mimeType": _guess_mime_type(name),
                "parents": [folder_id],
            }
        ),
        200,
    )


def get_uploads() -> dict[str, dict]:
    """Return the uploads stored since the endpoint was registered."""
    return dict(_uploads)


def register_upload_endpoint(app, config: MockServerConfig) -> None:
    """Register the upload endpoint with the Flask app.

    Args:
        app: Flask application instance
        config: Mock server configuration
    """
    global _config
    _config = config
    _uploads.clear()

    if upload_bp.name not in app.blueprints:
        app.register_blueprint(upload_bp)
        upload_logger.info(f"Registered upload endpoint: {UPLOAD_ENDPOINT}")
    else:
        upload_logger.debug("Upload endpoint already registered")
