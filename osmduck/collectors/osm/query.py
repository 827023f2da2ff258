"""
Overpass QL query building

Turns tag filters, an optional search area and element kinds into an
Overpass QL query. All user-supplied strings pass through _quote() and all
numbers through _fmt_num(), so nothing is spliced into the query unescaped.
"""

from typing import Iterable, List, Optional, Sequence

from ...exceptions import QueryBuildError
from ...models import Area, TagFilter, FetchRequest


DEFAULT_ELEMENTS = ("nwr",)
ELEMENT_KINDS = ("node", "way", "relation", "nwr")


def _quote(text: str) -> str:
    """Quote a string literal for Overpass QL"""
    escaped = (
        str(text)
        .replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\t", "\\t")
    )
    return f'"{escaped}"'


def _fmt_num(v: float) -> str:
    return format(float(v), ".15g")


def tag_filter_clause(tag: TagFilter) -> str:
    """Render one tag predicate: has key, regex match or exact match"""
    if tag.value is None:
        return f"[{_quote(tag.key)}]"
    if tag.regex:
        return f"[{_quote(tag.key)}~{_quote(tag.value)}]"
    return f"[{_quote(tag.key)}={_quote(tag.value)}]"


def area_clause(area: Optional[Area]) -> str:
    """
    Render the area filter. The radius form wins over bbox; an incomplete
    area renders as no filter at all (whole planet).
    """
    if area is None:
        return ""
    if area.center is not None and area.radius_m:
        return f"(around:{_fmt_num(area.radius_m)},{_fmt_num(area.center.lat)},{_fmt_num(area.center.lon)})"
    if area.bbox is not None:
        b = area.bbox
        return f"({_fmt_num(b.south)},{_fmt_num(b.west)},{_fmt_num(b.north)},{_fmt_num(b.east)})"
    return ""


def build_overpass_query(
    tags: Sequence[TagFilter],
    area: Optional[Area] = None,
    elements: Optional[Iterable[str]] = None,
    output: str = "center",
    timeout: int = 30,
) -> str:
    """
    Build an Overpass QL query

    Args:
        tags: Tag filters, applied to every element clause (must be non-empty)
        area: Optional search area
        elements: Element kinds, one clause each (default: nwr)
        output: 'center' for representative points, 'geom' for full geometry
        timeout: Server-side query timeout in seconds

    Returns:
        Overpass QL query text

    Raises:
        QueryBuildError: If no tag filters are given
    """
    if not tags:
        raise QueryBuildError("Either 'overpass_ql' or 'tags' must be provided")

    kinds: List[str] = list(elements) if elements else list(DEFAULT_ELEMENTS)
    for kind in kinds:
        if kind not in ELEMENT_KINDS:
            raise QueryBuildError(f"Unknown element kind: {kind!r}")

    tag_filters = "".join(tag_filter_clause(t) for t in tags)
    area_filter = area_clause(area)

    queries = "\n  ".join(f"{kind}{tag_filters}{area_filter};" for kind in kinds)
    out_format = "out geom;" if output == "geom" else "out center;"

    return f"[out:json][timeout:{int(timeout)}];\n(\n  {queries}\n);\n{out_format}"


def resolve_query(request: FetchRequest, default_timeout: int = 30) -> str:
    """Use the raw Overpass QL verbatim if given, otherwise build one from the filters"""
    if request.overpass_ql:
        return request.overpass_ql

    return build_overpass_query(
        tags=request.tags,
        area=request.area(),
        elements=request.elements,
        output=request.output or "center",
        timeout=request.timeout or default_timeout,
    )
