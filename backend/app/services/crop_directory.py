import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from app.config import settings
from app.core.exceptions import CropNotFoundError, UpstreamError

logger = logging.getLogger(__name__)


@dataclass
class CropDetails:
    """Crop, farm and owner attributes resolved for a crop id."""
    crop_id: str
    owner_user_id: str
    crop_name: str
    full_name: str = ""
    phone: str = ""
    village: str = ""
    taluk: str = ""
    district: str = ""
    quantity: str = ""
    variety: str = ""
    moisture: str = ""
    will_dry: str = ""

    def defaults(self) -> dict:
        return {
            "full_name": self.full_name,
            "phone": self.phone,
            "village": self.village,
            "taluk": self.taluk,
            "district": self.district,
            "quantity": self.quantity,
            "variety": self.variety,
            "moisture": self.moisture,
            "will_dry": self.will_dry,
        }


def _text(value) -> str:
    return "" if value is None else str(value)


def parse_crop_payload(crop_id: str, data: dict) -> CropDetails:
    """Map the crop service payload onto CropDetails."""
    farm = data.get("farm") or {}
    owner = farm.get("user") or {}
    owner_id = owner.get("id")
    if not owner_id or not data.get("cropName"):
        raise CropNotFoundError(crop_id)

    phone = _text(owner.get("mobileNumber"))
    if phone.startswith("+91"):
        phone = phone[3:]

    quantity = ""
    if data.get("quantity") and data.get("measure"):
        quantity = f"{data['quantity']} {data['measure']}"

    will_dry = data.get("willYouDryIt")
    if will_dry is True:
        will_dry_text = "Yes"
    elif will_dry is False:
        will_dry_text = "No"
    else:
        will_dry_text = ""

    return CropDetails(
        crop_id=crop_id,
        owner_user_id=str(owner_id),
        crop_name=str(data["cropName"]),
        full_name=_text(owner.get("name")),
        phone=phone,
        village=_text(farm.get("village")),
        taluk=_text(farm.get("taluk")),
        district=_text(farm.get("district")),
        quantity=quantity,
        variety=_text(data.get("maizeVariety") or data.get("otherVarietyName")),
        moisture=_text(data.get("moisturePercent")),
        will_dry=will_dry_text,
    )


class CropDirectory:
    """Client for the crop service that owns crop, farm and owner records."""

    def __init__(
        self,
        base_url: str = None,
        timeout: float = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.CROP_API_URL).rstrip("/")
        self.timeout = timeout or settings.CROP_API_TIMEOUT
        self.transport = transport

    async def lookup(self, crop_id: str) -> CropDetails:
        url = f"{self.base_url}/crop/get-crop-by-id/{crop_id}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(url)
        except httpx.HTTPError as e:
            logger.error(f"Crop service unreachable for {crop_id}: {e}")
            raise UpstreamError("crop service") from e

        if response.status_code >= 500:
            logger.error(f"Crop service error {response.status_code}: {response.text}")
            raise UpstreamError("crop service")
        if response.status_code != 200:
            raise CropNotFoundError(crop_id)

        try:
            body = response.json()
        except ValueError as e:
            logger.error(f"Crop service returned invalid JSON for {crop_id}")
            raise UpstreamError("crop service", "Crop service returned an invalid response") from e

        if not isinstance(body, dict) or body.get("code") != 200 or not body.get("data"):
            logger.info(f"Crop {crop_id} not found")
            raise CropNotFoundError(crop_id)

        details = parse_crop_payload(crop_id, body["data"])
        logger.info(f"Fetched crop data for crop_id={crop_id} owner={details.owner_user_id}")
        return details
