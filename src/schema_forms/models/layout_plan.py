"""
Resolved grid layout models.

A LayoutPlan needs no further lookups by the rendering layer.
"""

from pydantic import BaseModel, Field

from schema_forms.models.field_definitions import Breakpoint

GRID_COLUMNS = 24


class GridPlacement(BaseModel):
    """Effective span/offset of one field at one breakpoint."""

    span: int = Field(..., ge=1, le=GRID_COLUMNS)
    offset: int = Field(default=0, ge=0)

    @property
    def columns(self) -> int:
        """Columns consumed in a row, offset included."""
        return self.span + self.offset


class LayoutPlan(BaseModel):
    """Placement of every field at one breakpoint."""

    breakpoint: Breakpoint
    placements: dict[str, GridPlacement] = Field(
        default_factory=dict, description="Field id to placement, in rendering order"
    )
    rows: list[list[str]] = Field(
        default_factory=list, description="Field ids packed into 24-column rows"
    )

    def placement(self, field_id: str) -> GridPlacement:
        return self.placements[field_id]
