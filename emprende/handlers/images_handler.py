"""Upload endpoint for business logos and listing photos."""
from __future__ import annotations

import logging

from fastapi import APIRouter, File, Form, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from google.api_core.exceptions import GoogleAPICallError

from emprende.config import ConfigurationError, get_settings
from emprende.models import ImageFile, ImageProcessingOptions, UploadedImage
from emprende.services import storage
from emprende.services.image_processing import (
    ImageProcessingError,
    VALID_IMAGE_TYPES,
    convert_to_webp,
    format_file_size,
    get_compression_info,
    is_valid_image_file,
)

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/images", response_model=UploadedImage, status_code=201)
async def upload_image(
    file: UploadFile = File(...),
    folder: str | None = Form(None),
) -> UploadedImage:
    settings = get_settings()
    limit = settings.max_upload_bytes
    too_large = HTTPException(status_code=413, detail=f"Image must be smaller than {format_file_size(limit)}")
    if file.size is not None and file.size > limit:
        raise too_large

    # One byte past the limit is enough to tell an oversize body apart.
    source = ImageFile(
        name=file.filename or "image",
        mime_type=file.content_type or "application/octet-stream",
        data=await file.read(limit + 1),
    )
    if not is_valid_image_file(source):
        raise HTTPException(
            status_code=415,
            detail=f"Unsupported image type {source.mime_type}; expected one of {', '.join(sorted(VALID_IMAGE_TYPES))}",
        )
    if source.size > limit:
        raise too_large

    try:
        storage_service = storage.get_storage_service()
    except ConfigurationError as exc:
        logger.error("Image upload unavailable: %s", exc)
        raise HTTPException(status_code=503, detail=str(exc)) from exc

    options = ImageProcessingOptions(
        quality=settings.image_quality,
        max_width=settings.image_max_width,
        max_height=settings.image_max_height,
    )
    try:
        processed = await convert_to_webp(source, options)
    except ImageProcessingError as exc:
        logger.warning("Rejected image %s: %s", source.name, exc)
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    compression = get_compression_info(source, processed)
    try:
        gs_path, url = await run_in_threadpool(storage_service.upload_image, processed, folder=folder)
    except GoogleAPICallError as exc:
        logger.exception("Failed to store %s", processed.name)
        raise HTTPException(status_code=502, detail="Could not store the image, please try again") from exc
    logger.info(
        "Uploaded %s: %s -> %s (%d%% reduction)",
        processed.name,
        format_file_size(compression.original_size),
        format_file_size(compression.processed_size),
        compression.reduction,
    )

    return UploadedImage(
        url=url,
        gcs_path=gs_path,
        name=processed.name,
        mime_type=processed.mime_type,
        width=processed.width,
        height=processed.height,
        size=processed.size,
        compression=compression,
    )
