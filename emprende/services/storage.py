"""Google Cloud Storage helper for marketplace images.

Responsible for uploading normalized images and URL retrieval. Objects are
stored under the following key pattern:

    {folder}/{epoch_ms}-{random}.{ext}

e.g. ``business-logos/1718217600000-k3j9x0q2ab.webp``. Callers receive both
the *gs://* path and an externally accessible URL (public or signed
depending on configuration).
"""
from __future__ import annotations

import logging
import secrets
import string
import time
from datetime import timedelta
from functools import lru_cache
from typing import Tuple

from google.api_core.exceptions import GoogleAPICallError, NotFound
from google.cloud import storage

from emprende.config import ConfigurationError, Settings, get_settings
from emprende.models import ImageFile

logger = logging.getLogger(__name__)

_CACHE_CONTROL = "public, max-age=3600"
_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


class StorageService:  # pylint: disable=too-few-public-methods
    """Wrapper around Google Cloud Storage uploads and signed URLs."""

    _VALID_IMAGE_PREFIX = "image/"

    def __init__(self, settings: Settings | None = None, *, client: storage.Client | None = None) -> None:
        self._settings = settings or get_settings()
        if not self._settings.bucket_name:
            raise ConfigurationError("Cloud Storage", ["BUCKET_NAME"])

        self._client = client or storage.Client(project=self._settings.project_id)
        self._bucket = self._client.bucket(self._settings.bucket_name)

    # ------------------------------------------------------------------
    # Public helpers
    # ------------------------------------------------------------------

    def upload_image(self, image: ImageFile, *, folder: str | None = None) -> Tuple[str, str]:
        """Upload an image and return (gs_path, url).

        Parameters
        ----------
        image : ImageFile
            Normalized image, usually the output of ``convert_to_webp``.
        folder : str, optional
            Key prefix; defaults to ``settings.upload_folder``.
        """

        if not image.mime_type.startswith(self._VALID_IMAGE_PREFIX):
            raise ValueError("Unsupported content_type; expected image/*, got %s" % image.mime_type)

        folder = (folder or self._settings.upload_folder).strip("/")
        ext = _content_type_to_extension(image.mime_type)
        blob_name = f"{folder}/{_unique_file_stem()}.{ext}"
        blob = self._bucket.blob(blob_name)
        blob.cache_control = _CACHE_CONTROL

        # if_generation_match=0 refuses to overwrite an existing object.
        blob.upload_from_string(image.data, content_type=image.mime_type, if_generation_match=0)

        expires = timedelta(days=self._settings.signed_url_expiry_days)
        if self._settings.public_images:
            try:
                blob.make_public()
                url = blob.public_url
            except GoogleAPICallError as exc:
                logger.error("Failed to make blob public: %s", exc)
                url = blob.generate_signed_url(expires)
        else:
            url = blob.generate_signed_url(expires)

        gs_path = f"gs://{self._settings.bucket_name}/{blob_name}"
        logger.debug("Uploaded image to %s", gs_path)
        return gs_path, url

    def delete_image(self, path: str) -> bool:
        """Delete an object by key or ``gs://`` path; return False if it was missing."""

        prefix = f"gs://{self._settings.bucket_name}/"
        blob_name = path[len(prefix):] if path.startswith(prefix) else path.lstrip("/")
        try:
            self._bucket.blob(blob_name).delete()
        except NotFound:
            logger.debug("Image blob %s already gone", blob_name)
            return False
        logger.debug("Deleted image blob %s", blob_name)
        return True


# ------------------------------------------------------------------
# Helper functions
# ------------------------------------------------------------------

def _content_type_to_extension(content_type: str) -> str:
    mapping = {
        "image/jpeg": "jpg",
        "image/jpg": "jpg",
        "image/png": "png",
        "image/gif": "gif",
        "image/webp": "webp",
    }
    return mapping.get(content_type.lower(), "webp")


def _unique_file_stem() -> str:
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(10))
    return f"{int(time.time() * 1000)}-{suffix}"


@lru_cache()
def get_storage_service() -> StorageService:
    return StorageService()
