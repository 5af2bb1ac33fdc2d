"""Project GPS samples onto H3 hexagonal cells.

Projection is tolerant of bad input: samples that are malformed or outside
the valid lat/lng range are skipped and counted, never raised. Explicit
lookups on a single cell id (:func:`describe_cell`, :func:`cell_geometry`)
raise :class:`InvalidCellError` instead.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import math
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

import h3

from ..config import CELL_RESOLUTION, REGION_RESOLUTION
from ..errors import InvalidCellError
from ..geodesy import haversine_m
from ..models import CellGeometry, CellRegion, GeoCellVisit, LatLon

_LOG = logging.getLogger(__name__)

MIN_RESOLUTION = 0
MAX_RESOLUTION = 15

_H3_ERRORS = (h3.H3BaseException, ValueError, TypeError)

CellLike = Union[GeoCellVisit, str]


@dataclass(slots=True)
class CoverageSummary:
    """Aggregate statistics of the cells an activity touched."""

    total_zones: int
    total_hits: int
    total_area_m2: int
    average_hits: float
    coverage: List[Dict[str, Any]] = field(default_factory=list)
    summary: str = ""


def is_valid_resolution(resolution: Any) -> bool:
    return (
        isinstance(resolution, int)
        and not isinstance(resolution, bool)
        and MIN_RESOLUTION <= resolution <= MAX_RESOLUTION
    )


def _coerce_point(raw: Any) -> Optional[LatLon]:
    """Return a validated ``(lat, lng)`` tuple or ``None`` for unusable input."""

    try:
        if len(raw) < 2:
            return None
        lat = float(raw[0])
        lng = float(raw[1])
    except (TypeError, ValueError):
        return None
    if not (math.isfinite(lat) and math.isfinite(lng)):
        return None
    if lat < -90.0 or lat > 90.0 or lng < -180.0 or lng > 180.0:
        return None
    return lat, lng


def _cell_id(cell: CellLike) -> str:
    return cell.cell_id if isinstance(cell, GeoCellVisit) else cell


def _area_m2(resolution: int) -> float:
    return float(h3.average_hexagon_area(resolution, unit="m^2"))


def _boundary(cell_id: str) -> tuple[LatLon, ...]:
    return tuple((float(lat), float(lng)) for lat, lng in h3.cell_to_boundary(cell_id))


def project_to_cells(
    positions: Iterable[Sequence[float]],
    resolution: int = CELL_RESOLUTION,
) -> List[GeoCellVisit]:
    """Map samples to cells and return visits ordered by hit count.

    Cells with equal hit counts keep the order in which they were first
    visited.
    """

    if not is_valid_resolution(resolution):
        _LOG.warning("Ignoring projection at unsupported resolution %r", resolution)
        return []

    hits: Dict[str, int] = {}
    first_hits: Dict[str, LatLon] = {}
    skipped = 0
    for raw in positions:
        point = _coerce_point(raw)
        if point is None:
            skipped += 1
            continue
        try:
            cell_id = h3.latlng_to_cell(point[0], point[1], resolution)
        except _H3_ERRORS as exc:
            _LOG.warning("Skipping sample %s: cell conversion failed (%s)", point, exc)
            skipped += 1
            continue
        if cell_id not in hits:
            hits[cell_id] = 0
            first_hits[cell_id] = point
        hits[cell_id] += 1

    if skipped:
        _LOG.debug("Skipped %d invalid samples during cell projection", skipped)

    area = _area_m2(resolution)
    visits = []
    for cell_id, count in hits.items():
        lat, lng = h3.cell_to_latlng(cell_id)
        visits.append(
            GeoCellVisit(
                cell_id=cell_id,
                hit_count=count,
                center=(float(lat), float(lng)),
                bounds=_boundary(cell_id),
                resolution=resolution,
                area_m2=area,
                first_hit=first_hits[cell_id],
            )
        )
    # list.sort is stable, so ties keep first-visit order.
    visits.sort(key=lambda visit: visit.hit_count, reverse=True)
    return visits


def cells_along_path(
    positions: Iterable[Sequence[float]], resolution: int = CELL_RESOLUTION
) -> List[str]:
    """Return the unique cells of a path in the order they were entered."""

    if not is_valid_resolution(resolution):
        return []
    return list(
        dict.fromkeys(
            h3.latlng_to_cell(point[0], point[1], resolution)
            for point in (_coerce_point(raw) for raw in positions)
            if point is not None
        )
    )


def is_valid_cell(cell_id: Any) -> bool:
    if not isinstance(cell_id, str):
        return False
    try:
        return bool(h3.is_valid_cell(cell_id))
    except _H3_ERRORS:
        return False


def cell_resolution(cell_id: Any) -> Optional[int]:
    if not is_valid_cell(cell_id):
        return None
    return int(h3.get_resolution(cell_id))


def describe_cell(cell_id: str) -> CellGeometry:
    """Return center, boundary and area of a single cell."""

    if not is_valid_cell(cell_id):
        raise InvalidCellError(f"Invalid cell id: {cell_id!r}")
    resolution = int(h3.get_resolution(cell_id))
    lat, lng = h3.cell_to_latlng(cell_id)
    return CellGeometry(
        cell_id=cell_id,
        center=(float(lat), float(lng)),
        bounds=_boundary(cell_id),
        resolution=resolution,
        area_m2=_area_m2(resolution),
    )


def cell_geometry(cell_id: str) -> Dict[str, Any]:
    """Return the cell as a closed GeoJSON polygon feature (lng/lat order)."""

    described = describe_cell(cell_id)
    ring = [[lng, lat] for lat, lng in described.bounds]
    ring.append(list(ring[0]))
    return {
        "type": "Feature",
        "properties": {
            "cellId": described.cell_id,
            "resolution": described.resolution,
            "area": described.area_m2,
        },
        "geometry": {"type": "Polygon", "coordinates": [ring]},
    }


def contains(cell_id: str, lat: float, lng: float) -> bool:
    """Return ``True`` when the point falls inside ``cell_id``."""

    resolution = cell_resolution(cell_id)
    point = _coerce_point((lat, lng))
    if resolution is None or point is None:
        return False
    return h3.latlng_to_cell(point[0], point[1], resolution) == cell_id


def cell_neighbors(cell_id: str, k: int = 1) -> List[str]:
    """Return every cell within ``k`` grid steps, including ``cell_id``."""

    if not is_valid_cell(cell_id) or k < 0:
        return []
    return sorted(h3.grid_disk(cell_id, k))


def nearby_cells(
    lat: float,
    lng: float,
    resolution: int = CELL_RESOLUTION,
    k: int = 1,
) -> List[CellGeometry]:
    """Return geometry for the k-ring around the cell containing a point."""

    point = _coerce_point((lat, lng))
    if point is None or not is_valid_resolution(resolution):
        return []
    center = h3.latlng_to_cell(point[0], point[1], resolution)
    return [describe_cell(cell_id) for cell_id in cell_neighbors(center, k)]


def parent_cell(cell_id: str, resolution: int) -> Optional[str]:
    """Return the coarser ancestor, or ``cell_id`` when not coarser."""

    current = cell_resolution(cell_id)
    if current is None:
        return None
    if resolution >= current:
        return cell_id
    if resolution < MIN_RESOLUTION:
        return None
    return h3.cell_to_parent(cell_id, resolution)


def child_cells(cell_id: str, resolution: int) -> List[str]:
    """Return the finer descendants, or ``[cell_id]`` when not finer."""

    current = cell_resolution(cell_id)
    if current is None:
        return []
    if resolution <= current:
        return [cell_id]
    if resolution > MAX_RESOLUTION:
        return []
    return list(h3.cell_to_children(cell_id, resolution))


def cell_distance_m(first: str, second: str) -> Optional[float]:
    """Return the haversine distance between two cell centers."""

    if not (is_valid_cell(first) and is_valid_cell(second)):
        return None
    return haversine_m(h3.cell_to_latlng(first), h3.cell_to_latlng(second))


def find_overlaps(first: Iterable[CellLike], second: Iterable[CellLike]) -> List[str]:
    """Return the cell ids of ``first`` that also appear in ``second``."""

    second_ids = {_cell_id(cell) for cell in second}
    return [_cell_id(cell) for cell in first if _cell_id(cell) in second_ids]


def zone_coverage(
    positions: Iterable[Sequence[float]], resolution: int = CELL_RESOLUTION
) -> CoverageSummary:
    """Summarise how an activity's samples spread over cells."""

    visits = project_to_cells(positions, resolution)
    if not visits:
        return CoverageSummary(
            total_zones=0,
            total_hits=0,
            total_area_m2=0,
            average_hits=0.0,
            summary="No valid GPS data",
        )
    total_hits = sum(visit.hit_count for visit in visits)
    total_area = sum(visit.area_m2 for visit in visits)
    coverage = [
        {
            "cell_id": visit.cell_id,
            "hits": visit.hit_count,
            "percentage": visit.hit_count / total_hits * 100.0,
            "area_m2": visit.area_m2,
            "center": visit.center,
        }
        for visit in visits
    ]
    return CoverageSummary(
        total_zones=len(visits),
        total_hits=total_hits,
        total_area_m2=int(round(total_area)),
        average_hits=round(total_hits / len(visits), 2),
        coverage=coverage,
        summary=(
            f"Activity covered {len(visits)} cells with total area of "
            f"{int(round(total_area))} m2"
        ),
    )


def group_by_region(
    cells: Iterable[CellLike], resolution: int = REGION_RESOLUTION
) -> List[CellRegion]:
    """Group cells under their shared coarser parent, summing hits."""

    regions: Dict[str, CellRegion] = {}
    for cell in cells:
        parent = parent_cell(_cell_id(cell), resolution)
        if parent is None:
            _LOG.warning("Skipping invalid cell %r while grouping regions", cell)
            continue
        region = regions.get(parent)
        if region is None:
            lat, lng = h3.cell_to_latlng(parent)
            region = CellRegion(
                region_id=parent,
                center=(float(lat), float(lng)),
                resolution=int(h3.get_resolution(parent)),
                area_m2=_area_m2(int(h3.get_resolution(parent))),
            )
            regions[parent] = region
        region.cells.append(cell)
        region.total_hits += cell.hit_count if isinstance(cell, GeoCellVisit) else 1
    return list(regions.values())


__all__ = [
    "CoverageSummary",
    "project_to_cells",
    "cells_along_path",
    "is_valid_cell",
    "is_valid_resolution",
    "cell_resolution",
    "describe_cell",
    "cell_geometry",
    "contains",
    "cell_neighbors",
    "nearby_cells",
    "parent_cell",
    "child_cells",
    "cell_distance_m",
    "find_overlaps",
    "zone_coverage",
    "group_by_region",
]
