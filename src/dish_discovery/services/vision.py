"""Menu extraction service using LLM vision."""

import base64
from dataclasses import dataclass
from typing import Protocol

from pydantic import ValidationError

from dish_discovery.domain.menus import DishCandidate, MenuExtract
from dish_discovery.errors import ExtractionFault, InputValidationError

_NULLABLE_STRING: dict[str, object] = {"anyOf": [{"type": "string"}, {"type": "null"}]}

MENU_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "dishes": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "description": _NULLABLE_STRING,
                    "price": _NULLABLE_STRING,
                    "category": _NULLABLE_STRING,
                },
                "required": ["name", "description", "price", "category"],
                "additionalProperties": False,
            },
        }
    },
    "required": ["dishes"],
    "additionalProperties": False,
}

MENU_PROMPT = (
    "Analyze this restaurant menu image and extract all the dishes with their "
    "details. Focus on identifying dish names, descriptions, prices, and "
    "categories (appetizer, main course, dessert, etc.). Be thorough and "
    "accurate. Use null for details that are not visible."
)


class StructuredOutputClient(Protocol):
    """Interface for LLM calls that return JSON matching a schema."""

    async def generate(  # noqa: PLR0913
        self,
        *,
        model: str,
        store: bool,
        prompt: str,
        schema: dict[str, object],
        schema_name: str,
        image_data_url: str | None = None,
        temperature: float | None = None,
        timeout: float | None = None,
    ) -> dict[str, object]:
        """Return structured data produced by the model."""


@dataclass
class MenuVisionService:
    """Service that reads dish listings off a menu photo."""

    client: StructuredOutputClient
    model: str
    store: bool
    timeout_seconds: float = 30.0

    async def extract(self, image: bytes | str) -> list[DishCandidate]:
        """Extract dish candidates; an empty list is a valid result."""
        data_url = to_data_url(image)
        try:
            raw = await self.client.generate(
                model=self.model,
                store=self.store,
                prompt=MENU_PROMPT,
                schema=MENU_SCHEMA,
                schema_name="menu_analysis",
                image_data_url=data_url,
                temperature=0.1,
                timeout=self.timeout_seconds,
            )
        except Exception as exc:
            raise ExtractionFault("Failed to analyze menu", cause=exc) from exc
        try:
            extract = MenuExtract.model_validate(raw)
        except ValidationError as exc:
            raise ExtractionFault(
                "Menu analysis returned an unreadable result", cause=exc
            ) from exc
        return extract.dishes


def to_data_url(image: bytes | str) -> str:
    """Normalize raw bytes, base64 text or a data URL into a data URL."""
    if isinstance(image, str):
        cleaned = image.strip()
        if not cleaned:
            raise InputValidationError("No image provided")
        if cleaned.startswith("data:"):
            return cleaned
        return f"data:image/jpeg;base64,{cleaned}"
    if not image:
        raise InputValidationError("No image provided")
    mime_type = _detect_mime_type(image)
    encoded = base64.b64encode(image).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def _detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"
