"""
Upload ingress endpoint.

Decodes a multipart (or JSON) request into an ``UploadRequest`` and hands it
to the relay. File parts are read from the ``data`` field.
"""

import mimetypes
import os
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException

from ....core.domain.session import METADATA_FIELDS
from ....core.domain.upload import IncomingFile, UploadRequest
from ....core.exceptions import IngestionError
from ....core.services.upload_relay import UploadRelay
from ....infrastructure.config.models import RelayConfig
from ..dependencies import get_config, get_upload_relay

router = APIRouter()

TRUTHY = ("true", "1", "yes", "on")


def parse_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return isinstance(value, str) and value.strip().lower() in TRUTHY


def _text(value: Any) -> Optional[str]:
    """Stripped string value, or None when blank."""
    if isinstance(value, str):
        return value.strip() or None
    return None


def _field(value: Any) -> Optional[str]:
    """Caller's string value unchanged, or None when blank."""
    if isinstance(value, str) and value.strip():
        return value
    return None


def _measure(upload: UploadFile) -> int:
    if upload.size is not None:
        return upload.size
    upload.file.seek(0, os.SEEK_END)
    size = upload.file.tell()
    upload.file.seek(0)
    return size


def to_incoming(upload: UploadFile) -> IncomingFile:
    filename = upload.filename or "upload"
    content_type = (upload.content_type
                    or mimetypes.guess_type(filename)[0]
                    or "application/octet-stream")
    return IncomingFile(
        filename=filename,
        content_type=content_type,
        size=_measure(upload),
        source=upload,
    )


async def decode_request(request: Request, file_field: str) -> UploadRequest:
    """Extract file parts and form fields from the incoming request."""
    files: List[IncomingFile] = []
    fields: Dict[str, Any]

    if request.headers.get("content-type", "").startswith("application/json"):
        try:
            fields = await request.json()
        except ValueError as e:
            raise IngestionError(f"Malformed JSON body: {e}") from e
        if not isinstance(fields, dict):
            raise IngestionError("JSON body must be an object")
    else:
        try:
            form = await request.form()
        except MultiPartException as e:
            raise IngestionError(f"Malformed multipart body: {e.message}") from e
        except HTTPException as e:
            raise IngestionError(f"Malformed form body: {e.detail}") from e
        fields = {key: value for key, value in form.items() if not isinstance(value, UploadFile)}
        files = [to_incoming(part) for part in form.getlist(file_field)
                 if isinstance(part, UploadFile)]

    session_id = _text(fields.get("session_id")) or _text(request.headers.get("X-Session-ID"))
    return UploadRequest(
        files=files,
        session_id=session_id,
        is_last=parse_flag(fields.get("is_last")),
        metadata={name: _field(fields.get(name)) for name in METADATA_FIELDS},
    )


@router.post("/upload")
async def upload(
    request: Request,
    relay: UploadRelay = Depends(get_upload_relay),
    config: RelayConfig = Depends(get_config),
) -> JSONResponse:
    """Buffer the attached files, forwarding the session when ``is_last`` is set."""
    upload_request = await decode_request(request, config.downstream.file_field)
    result = await relay.handle_upload(upload_request)
    return JSONResponse(
        status_code=200 if result.success else 502,
        content=result.to_response(),
    )
