"""Supabase Storage bucket for meal images."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from meal_signals.domain.errors import ImageFetchError, ImageUploadError
from meal_signals.services.meals import ImageStorage

_EXTENSIONS = {"image/jpeg": "jpg", "image/png": "png", "image/webp": "webp"}


@dataclass
class SupabaseImageStorage(ImageStorage):
    """Supabase implementation for image blobs."""

    client: Client
    bucket: str = "meal-images"

    def put(self, user_id: str, image_bytes: bytes, mime_type: str) -> str:
        """Upload image bytes and return the object path."""
        extension = _EXTENSIONS.get(mime_type, "jpg")
        stamp = int(datetime.now(tz=UTC).timestamp() * 1000)
        path = f"{user_id}/{stamp}.{extension}"
        try:
            self.client.storage.from_(self.bucket).upload(
                path, image_bytes, {"content-type": mime_type}
            )
        except Exception as exc:
            raise ImageUploadError(f"Failed to upload meal image: {exc}") from exc
        return path

    def get(self, ref: str) -> bytes:
        """Download image bytes by object path."""
        try:
            data = self.client.storage.from_(self.bucket).download(ref)
        except Exception as exc:
            raise ImageFetchError(f"Failed to download meal image: {exc}") from exc
        if not data:
            raise ImageFetchError(f"Meal image {ref} is empty")
        return data
