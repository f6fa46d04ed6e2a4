import httpx
import pytest

from app.core.exceptions import CropNotFoundError, UpstreamError
from app.services.crop_directory import CropDirectory, parse_crop_payload

BASE_URL = "https://crops.example.com"

CROP_PAYLOAD = {
    "cropName": "Maize",
    "quantity": 20,
    "measure": "quintal",
    "maizeVariety": "Hybrid",
    "moisturePercent": 14,
    "willYouDryIt": True,
    "farm": {
        "village": "Hosahalli",
        "taluk": "Channapatna",
        "district": "Ramanagara",
        "user": {"id": "U1", "name": "Ramesh Gowda", "mobileNumber": "+919876543210"},
    },
}


def _directory(handler) -> CropDirectory:
    return CropDirectory(base_url=BASE_URL, timeout=1.0, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_lookup_maps_crop_payload():
    requested = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(str(request.url))
        return httpx.Response(200, json={"code": 200, "data": CROP_PAYLOAD})

    details = await _directory(handler).lookup("C1")

    assert requested == [f"{BASE_URL}/crop/get-crop-by-id/C1"]
    assert details.owner_user_id == "U1"
    assert details.crop_name == "Maize"
    assert details.phone == "9876543210"
    assert details.quantity == "20 quintal"
    assert details.variety == "Hybrid"
    assert details.moisture == "14"
    assert details.will_dry == "Yes"
    assert details.village == "Hosahalli"


def test_parse_crop_payload_fallbacks():
    payload = {
        "cropName": "Paddy",
        "otherVarietyName": "Sona Masuri",
        "willYouDryIt": False,
        "quantity": 5,
        "farm": {"user": {"id": 42, "mobileNumber": "9000000000"}},
    }

    details = parse_crop_payload("C9", payload)

    assert details.owner_user_id == "42"
    assert details.variety == "Sona Masuri"
    assert details.will_dry == "No"
    assert details.phone == "9000000000"
    assert details.quantity == ""
    assert details.full_name == ""


def test_parse_crop_payload_requires_owner():
    payload = dict(CROP_PAYLOAD, farm={"village": "Hosahalli"})
    with pytest.raises(CropNotFoundError):
        parse_crop_payload("C1", payload)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(404, json={"code": 404, "message": "not found"}),
        httpx.Response(200, json={"code": 404, "data": None}),
        httpx.Response(200, json={"code": 200, "data": None}),
        httpx.Response(200, json=["unexpected"]),
        httpx.Response(200, json={"code": 200, "data": {"cropName": "Maize", "farm": {}}}),
    ],
)
async def test_lookup_not_found(response):
    with pytest.raises(CropNotFoundError) as exc_info:
        await _directory(lambda request: response).lookup("C404")
    assert exc_info.value.error_code == "CROP_NOT_FOUND"


@pytest.mark.asyncio
async def test_lookup_server_error_is_upstream():
    with pytest.raises(UpstreamError) as exc_info:
        await _directory(lambda request: httpx.Response(503, text="down")).lookup("C1")
    assert exc_info.value.status_code == 502


@pytest.mark.asyncio
async def test_lookup_invalid_json_is_upstream():
    with pytest.raises(UpstreamError):
        await _directory(lambda request: httpx.Response(200, text="<html>")).lookup("C1")


@pytest.mark.asyncio
async def test_lookup_connection_error_is_upstream():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UpstreamError):
        await _directory(handler).lookup("C1")
