"""Shared Pydantic schemas for common API elements."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base for response schemas; serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class SuccessResponse(ApiModel):
    """Plain acknowledgement body."""

    success: bool = True


class ToggleResponse(SuccessResponse):
    """Result of flipping a relation; ``active`` is the state after the call."""

    active: bool = Field(..., description="Whether the relation exists after the toggle")


class Page(ApiModel):
    """Pagination envelope fields shared by list responses."""

    total_pages: int
    current_page: int
