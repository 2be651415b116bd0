import json
from unittest.mock import MagicMock

import pytest

from autora.agents.vision_agent.extractor import (
    CarImageExtractor,
    ImageExtractionError,
    REQUIRED_FIELDS,
    parse_car_details,
)

VALID = {
    "brand": "Hyundai",
    "model": "Creta",
    "year": 2023,
    "color": "Blue",
    "price": "1400000",
    "mileage": "16 kmpl",
    "seats": "5",
    "bodyType": "SUV",
    "fuelType": "Petrol",
    "transmission": "Automatic",
    "description": "Compact SUV with a panoramic sunroof.",
    "confidence": 0.9,
}


def test_parse_plain_json():
    details = parse_car_details(json.dumps(VALID))
    assert details.brand == "Hyundai"
    assert details.body_type == "SUV"
    assert details.fuel_type == "Petrol"
    assert details.confidence == 0.9


def test_parse_strips_code_fences():
    text = "```json\n" + json.dumps(VALID) + "\n```"
    assert parse_car_details(text).model == "Creta"


@pytest.mark.parametrize("field", REQUIRED_FIELDS)
def test_missing_required_field_fails(field):
    payload = {k: v for k, v in VALID.items() if k != field}
    with pytest.raises(ImageExtractionError, match="Failed to parse AI response"):
        parse_car_details(json.dumps(payload))


def test_seats_is_optional():
    payload = {k: v for k, v in VALID.items() if k != "seats"}
    assert parse_car_details(json.dumps(payload)).seats is None


@pytest.mark.parametrize("field", ["mileage", "price", "color", "year", "confidence"])
def test_present_null_value_is_accepted(field):
    details = parse_car_details(json.dumps({**VALID, field: None}))
    assert details.model_dump()[field] is None
    assert details.brand == "Hyundai"


def test_electric_car_without_mileage():
    payload = {**VALID, "mileage": None, "fuelType": "Electric", "price": None}
    details = parse_car_details(json.dumps(payload))
    assert details.mileage is None
    assert details.fuel_type == "Electric"


def test_confidence_is_clamped():
    assert parse_car_details(json.dumps({**VALID, "confidence": 3})).confidence == 1.0
    assert parse_car_details(json.dumps({**VALID, "confidence": -0.2})).confidence == 0.0


@pytest.mark.parametrize("text", ["", "not json", "[1, 2]"])
def test_unusable_answers_fail(text):
    with pytest.raises(ImageExtractionError):
        parse_car_details(text)


def test_extract_without_api_key():
    extractor = CarImageExtractor(api_key=None)
    with pytest.raises(ImageExtractionError, match="Gemini API key is not configured"):
        extractor.extract(b"img", "image/jpeg")


def test_extract_sends_image_and_prompt():
    extractor = CarImageExtractor(api_key="key", model_name="gemini-test")
    fake_client = MagicMock()
    fake_client.models.generate_content.return_value.text = json.dumps(VALID)
    extractor._client = fake_client

    details = extractor.extract(b"\xff\xd8jpeg", "image/jpeg")

    assert details.transmission == "Automatic"
    kwargs = fake_client.models.generate_content.call_args.kwargs
    assert kwargs["model"] == "gemini-test"
    assert len(kwargs["contents"]) == 2


def test_extract_wraps_api_errors():
    extractor = CarImageExtractor(api_key="key")
    fake_client = MagicMock()
    fake_client.models.generate_content.side_effect = RuntimeError("quota exceeded")
    extractor._client = fake_client

    with pytest.raises(ImageExtractionError, match="quota exceeded"):
        extractor.extract(b"img", "image/png")
