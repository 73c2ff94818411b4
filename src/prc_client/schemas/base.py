"""Base schema class for PRC API payloads."""

from typing import Any, Self

from pydantic import BaseModel, ConfigDict, ValidationError


class SchemaBase(BaseModel):
    """Base class for all PRC API schemas.

    Fields use snake_case names with the API's PascalCase keys as aliases,
    so payloads validate directly and models dump back to the wire format
    with ``by_alias=True``.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Self:
        """Validate a single API object."""
        return cls.model_validate(data)

    @classmethod
    def from_api_list(cls, items: list[dict[str, Any]] | None) -> list[Self]:
        """Validate a list of API objects, skipping entries that don't validate."""
        parsed: list[Self] = []
        for item in items or []:
            try:
                parsed.append(cls.model_validate(item))
            except ValidationError:
                continue
        return parsed
