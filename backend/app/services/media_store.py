import asyncio
import hashlib
import logging
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import httpx

from app.config import settings
from app.core.exceptions import StorageError

logger = logging.getLogger(__name__)

CLOUDINARY_TRANSFORMATION = "c_limit,h_1024,w_1024/q_auto:good"


@dataclass
class PhotoUpload:
    """Raw photo bytes received from the farmer."""
    content: bytes
    filename: str = ""
    content_type: Optional[str] = None


class MediaStore:
    """Stores photo bytes and returns a durable URL."""

    def __init__(self, provider: str = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.provider = provider or settings.MEDIA_PROVIDER
        self.transport = transport

    async def put(self, content: bytes, hint: str) -> str:
        public_id = f"verification_{int(time.time() * 1000)}_{hint}"
        if self.provider == "local":
            return await self._put_local(content, public_id)
        elif self.provider == "cloudinary":
            return await self._put_cloudinary(content, public_id)
        else:
            logger.error(f"Unknown media provider: {self.provider}")
            raise StorageError(f"Unknown media provider: {self.provider}")

    async def _put_local(self, content: bytes, public_id: str) -> str:
        folder = Path(settings.UPLOAD_DIR) / settings.MEDIA_FOLDER
        name = f"{public_id}_{uuid.uuid4().hex[:8]}.jpg"
        try:
            await asyncio.to_thread(folder.mkdir, parents=True, exist_ok=True)
            await asyncio.to_thread((folder / name).write_bytes, content)
        except OSError as e:
            logger.error(f"Failed to write {name}: {e}")
            raise StorageError(details={"provider": "local"}) from e
        return f"{settings.MEDIA_BASE_URL.rstrip('/')}/{settings.MEDIA_FOLDER}/{name}"

    async def _put_cloudinary(self, content: bytes, public_id: str) -> str:
        if not (settings.CLOUDINARY_CLOUD_NAME and settings.CLOUDINARY_API_KEY and settings.CLOUDINARY_API_SECRET):
            raise StorageError("Cloudinary credentials are not configured")

        params = {
            "folder": settings.MEDIA_FOLDER,
            "public_id": public_id,
            "timestamp": str(int(time.time())),
            "transformation": CLOUDINARY_TRANSFORMATION,
        }
        to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params))
        signature = hashlib.sha1(f"{to_sign}{settings.CLOUDINARY_API_SECRET}".encode()).hexdigest()

        url = f"https://api.cloudinary.com/v1_1/{settings.CLOUDINARY_CLOUD_NAME}/image/upload"
        try:
            async with httpx.AsyncClient(timeout=30.0, transport=self.transport) as client:
                response = await client.post(
                    url,
                    data={**params, "api_key": settings.CLOUDINARY_API_KEY, "signature": signature},
                    files={"file": (public_id, content)},
                )
        except httpx.HTTPError as e:
            logger.error(f"Cloudinary upload failed for {public_id}: {e}")
            raise StorageError(details={"provider": "cloudinary"}) from e

        if response.status_code != 200:
            logger.error(f"Cloudinary error: {response.text}")
            raise StorageError(details={"provider": "cloudinary", "status": response.status_code})

        try:
            body = response.json()
        except ValueError as e:
            logger.error(f"Cloudinary returned invalid JSON for {public_id}")
            raise StorageError("Cloudinary returned an invalid response", details={"provider": "cloudinary"}) from e

        secure_url = body.get("secure_url") if isinstance(body, dict) else None
        if not secure_url:
            raise StorageError("Cloudinary response has no secure_url")
        return secure_url
