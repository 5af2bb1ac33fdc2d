"""Hexagonal cell projection of GPS tracks."""

from .projection import (
    CoverageSummary,
    cell_distance_m,
    cell_geometry,
    cells_along_path,
    cell_neighbors,
    cell_resolution,
    child_cells,
    contains,
    describe_cell,
    find_overlaps,
    group_by_region,
    is_valid_cell,
    nearby_cells,
    parent_cell,
    project_to_cells,
    zone_coverage,
)

__all__ = [
    "CoverageSummary",
    "cell_distance_m",
    "cell_geometry",
    "cells_along_path",
    "cell_neighbors",
    "cell_resolution",
    "child_cells",
    "contains",
    "describe_cell",
    "find_overlaps",
    "group_by_region",
    "is_valid_cell",
    "nearby_cells",
    "parent_cell",
    "project_to_cells",
    "zone_coverage",
]
