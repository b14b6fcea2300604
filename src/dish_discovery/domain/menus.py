"""Models for menu extraction results."""

from pydantic import BaseModel, field_validator


class DishCandidate(BaseModel):
    """Single dish read off a menu photo."""

    name: str
    description: str | None = None
    price: str | None = None
    category: str | None = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("dish name must not be empty")
        return cleaned


class MenuExtract(BaseModel):
    """Structured output for menu extraction."""

    dishes: list[DishCandidate]
