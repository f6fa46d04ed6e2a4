import random

from app.core.identifiers import Clock, utcnow
from app.services.crop_directory import CropDirectory
from app.services.media_store import MediaStore

_rng = random.SystemRandom()


async def get_clock() -> Clock:
    return utcnow


async def get_rng() -> random.Random:
    return _rng


async def get_crop_directory() -> CropDirectory:
    return CropDirectory()


async def get_media_store() -> MediaStore:
    return MediaStore()

