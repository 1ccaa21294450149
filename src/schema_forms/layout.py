"""
Layout Resolver.

Resolves every field's placement on the 24-column grid for a breakpoint.
Layout is mobile-first: a value set for a breakpoint applies to that
breakpoint and every larger one until another override appears. Smaller
breakpoints never inherit from larger ones.
"""

from schema_forms.models.field_definitions import Breakpoint, FieldDefinition, FieldLayout, FormMetadata
from schema_forms.models.layout_plan import GRID_COLUMNS, GridPlacement, LayoutPlan

# Minimum viewport width (px) of each breakpoint, smallest first
BREAKPOINT_WIDTHS: dict[Breakpoint, int] = {
    Breakpoint.XS: 0,
    Breakpoint.SM: 640,
    Breakpoint.MD: 768,
    Breakpoint.LG: 1024,
    Breakpoint.XL: 1280,
    Breakpoint.XXL: 1536,
}

BREAKPOINT_ORDER: list[Breakpoint] = list(BREAKPOINT_WIDTHS)


def breakpoint_for_width(width: int) -> Breakpoint:
    """Largest breakpoint whose minimum width fits the viewport."""
    current = Breakpoint.XS
    for bp, min_width in BREAKPOINT_WIDTHS.items():
        if width >= min_width:
            current = bp
    return current


def _fallback_chain(bp: Breakpoint) -> list[Breakpoint]:
    """The breakpoint itself followed by every smaller one, nearest first."""
    index = BREAKPOINT_ORDER.index(bp)
    return BREAKPOINT_ORDER[index::-1]


def resolve_placement(layout: FieldLayout | None, bp: Breakpoint) -> GridPlacement:
    """
    Effective span and offset of one field at one breakpoint.

    Span and offset resolve independently: each walks down from ``bp``
    to xs and takes the first explicit value, else the base value.
    An offset is clamped so the field never overflows its row.
    """
    if layout is None:
        return GridPlacement(span=GRID_COLUMNS, offset=0)

    span, offset = layout.span, layout.offset
    for candidate in reversed(_fallback_chain(bp)):
        override = layout.responsive.get(candidate)
        if override is None:
            continue
        if override.span is not None:
            span = override.span
        if override.offset is not None:
            offset = override.offset

    return GridPlacement(span=span, offset=min(offset, GRID_COLUMNS - span))


class LayoutResolver:
    """Computes LayoutPlans from FormMetadata."""

    @staticmethod
    def _ordered(fields: list[FieldDefinition]) -> list[FieldDefinition]:
        # Explicit order first, declaration order breaks ties and places the rest
        indexed = list(enumerate(fields))
        indexed.sort(key=lambda item: (
            item[1].layout is None or item[1].layout.order is None,
            item[1].layout.order if item[1].layout and item[1].layout.order is not None else 0,
            item[0],
        ))
        return [field for _, field in indexed]

    def resolve(self, metadata: FormMetadata, bp: Breakpoint | str) -> LayoutPlan:
        """
        Resolve the layout of every field at one breakpoint.

        Fields are packed into rows in rendering order; a field that does
        not fit in the remaining columns starts a new row.
        """
        bp = Breakpoint(bp)
        placements: dict[str, GridPlacement] = {}
        rows: list[list[str]] = []
        used = GRID_COLUMNS

        for field in self._ordered(metadata.fields):
            placement = resolve_placement(field.layout, bp)
            placements[field.id] = placement
            if used + placement.columns > GRID_COLUMNS:
                rows.append([])
                used = 0
            rows[-1].append(field.id)
            used += placement.columns

        return LayoutPlan(breakpoint=bp, placements=placements, rows=rows)

    def resolve_all(self, metadata: FormMetadata) -> dict[str, dict[Breakpoint, GridPlacement]]:
        """Placement of every field at every breakpoint."""
        return {
            field.id: {bp: resolve_placement(field.layout, bp) for bp in BREAKPOINT_ORDER}
            for field in metadata.fields
        }
