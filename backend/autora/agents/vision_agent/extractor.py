# backend/autora/agents/vision_agent/extractor.py

"""
Vision Extractor
Turns a single car photo into draft listing fields using Gemini
"""
import json
import logging
import re

from google import genai
from google.genai import types
from pydantic import ValidationError

from ...core.config import settings
from ...schemas.car_schema import CarDetails

logger = logging.getLogger(__name__)

EXTRACTION_PROMPT = """
Analyze this car image and extract the following information:
1. brand (manufacturer)
2. Model
3. Year (approximately)
4. Color (primary major color only)
5. Body type (SUV, Sedan, Hatchback, etc.)
6. Mileage in kmpl with unit 'kmpl' or N/A if not available or electric per charge distance
7. Fuel type (your best guess)
8. no of seats
9. Transmission type (your best guess)
10. Price (your best guess) in Indian rupees, just give number
11. Short Description as to be added to a car listing

Format your response as a clean JSON object with these fields:
{
  "brand": "",
  "model": "",
  "year": 0000,
  "color": "",
  "price": "",
  "mileage": "",
  "seats": "",
  "bodyType": "",
  "fuelType": "",
  "transmission": "",
  "description": "",
  "confidence": 0.0
}

For confidence, provide a value between 0 and 1 representing how confident you are in your overall identification.
Only respond with the JSON object, nothing else.
"""

REQUIRED_FIELDS = [
    "brand", "model", "year", "color", "price", "mileage",
    "bodyType", "fuelType", "transmission", "description", "confidence",
]

# Model output keys -> CarDetails attribute names
FIELD_MAP = {
    "bodyType": "body_type",
    "fuelType": "fuel_type",
}

CODE_FENCE = re.compile(r"```(?:json)?\n?")


class ImageExtractionError(Exception):
    """The vision model failed or its answer was unusable."""


def parse_car_details(text: str) -> CarDetails:
    """
    Parse the model's answer. Markdown code fences are tolerated; a
    missing required field is a hard failure.
    """
    cleaned = CODE_FENCE.sub("", text or "").strip()

    try:
        payload = json.loads(cleaned)
        if not isinstance(payload, dict):
            raise ValueError("Response is not a JSON object")

        missing = [field for field in REQUIRED_FIELDS if field not in payload]
        if missing:
            raise ValueError(f"Missing fields: {', '.join(missing)}")

        normalized = {FIELD_MAP.get(key, key): value for key, value in payload.items()}
        return CarDetails(**normalized)
    except (ValueError, ValidationError) as e:
        logger.error(f"Failed to parse AI response: {e}")
        raise ImageExtractionError("Failed to parse AI response") from e


class CarImageExtractor:
    def __init__(self, api_key, model_name: str = "gemini-2.0-flash"):
        self.api_key = api_key
        self.model_name = model_name
        self._client = None

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def extract(self, image_bytes: bytes, mime_type: str) -> CarDetails:
        if not self.api_key:
            raise ImageExtractionError("Gemini API key is not configured")

        try:
            response = self.client.models.generate_content(
                model=self.model_name,
                contents=[
                    types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
                    EXTRACTION_PROMPT,
                ],
            )
            text = response.text
        except Exception as e:
            logger.error(f"Gemini request failed: {e}", exc_info=True)
            raise ImageExtractionError(f"Error processing image with AI: {e}") from e

        details = parse_car_details(text)
        logger.info(f"Extracted {details.brand} {details.model} (confidence {details.confidence})")
        return details


_extractor = None

def get_extractor() -> CarImageExtractor:
    global _extractor
    if _extractor is None:
        _extractor = CarImageExtractor(settings.GEMINI_API_KEY, settings.GEMINI_MODEL)
    return _extractor
