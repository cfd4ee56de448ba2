"""
Offline geohash index builder using a prove-or-split strategy.

For every country the builder walks the geohash tree from the 32 one-character
cells downwards:

1. A cell whose box does not touch the country's bounding box is skipped.
2. A cell crossed by none of the country's ring edges lies wholly inside or
   wholly outside the territory; its center decides which. Inside cells are
   emitted at that (possibly coarse) precision.
3. A cell crossed by an edge is split into its 32 children, until
   `max_precision` is reached, where it is emitted as a boundary cell.

Only the edges crossing a cell are handed down to its children, so deep
levels test a handful of edges instead of the whole ring.

Coarse keys are found at lookup time through prefix fallback. Because an
exact or longer key shadows its ancestors, entries of ancestor keys are
finally pushed down into every descendant key that exists.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from . import geohash
from .geometry import (
    BBox,
    Point,
    bounding_box,
    boxes_overlap,
    merge_boxes,
    point_in_polygon_with_holes,
    ring_edges,
    segment_intersects_box,
)
from .models import PolygonGeometry

logger = logging.getLogger(__name__)

Edge = Tuple[Point, Point]


@dataclass
class IndexBuilderConfig:
    """Configuration for the geohash index builder."""

    max_precision: int = 5
    """Precision at which boundary cells stop splitting."""

    min_precision: int = 1
    """Shortest key length emitted; coarser interior cells are split."""

    def __post_init__(self):
        if self.min_precision < 1:
            raise ValueError("min_precision must be at least 1")
        if self.max_precision < self.min_precision:
            raise ValueError("max_precision must be >= min_precision")
        if self.max_precision > geohash.GEOHASH_PRECISION:
            raise ValueError(
                f"max_precision must not exceed the lookup precision "
                f"({geohash.GEOHASH_PRECISION})"
            )


@dataclass
class IndexStats:
    """Statistics collected while building the index."""

    countries_indexed: int = 0
    cells_visited: int = 0
    cells_split: int = 0
    interior_cells: int = 0
    boundary_cells: int = 0
    max_precision_reached: int = 0


def _cell_box(cell: geohash.GeohashCell) -> BBox:
    return cell.lat_range[0], cell.lat_range[1], cell.lon_range[0], cell.lon_range[1]


class GeohashIndexBuilder:
    """
    Builder for the geohash -> candidate countries index.
    """

    def __init__(
        self,
        polygons: Mapping[int, PolygonGeometry],
        config: Optional[IndexBuilderConfig] = None,
    ):
        """
        Args:
            polygons: Mapping from country ID to polygon
            config: Builder configuration (defaults if omitted)
        """
        self.polygons = polygons
        self.config = config or IndexBuilderConfig()
        self.stats = IndexStats()
        self._index: Dict[str, List[int]] = {}

    def build(self) -> Dict[str, List[int]]:
        """
        Build the complete index.

        Returns:
            Mapping from geohash key to country IDs
        """
        self.stats = IndexStats()
        self._index = {}

        for country_id, polygon in self.polygons.items():
            self._index_country(country_id, polygon)

        self._push_down()
        logger.info(
            "Indexed %d countries into %d cells (%d interior, %d boundary)",
            self.stats.countries_indexed,
            len(self._index),
            self.stats.interior_cells,
            self.stats.boundary_cells,
        )
        return self._index

    def _index_country(self, country_id: int, polygon: PolygonGeometry) -> None:
        exteriors = [ext for ext in polygon.exteriors if len(ext) >= 3]
        if not exteriors:
            logger.warning("Country %s has no usable exterior; not indexed", country_id)
            return

        edges: List[Edge] = []
        for ring in list(exteriors) + list(polygon.holes):
            edges.extend(ring_edges(ring))

        country_box = merge_boxes(bounding_box(ext) for ext in exteriors)
        for root in geohash.BASE32:
            self._build_cell(root, edges, country_id, polygon, country_box)

        self.stats.countries_indexed += 1

    def _contains(self, polygon: PolygonGeometry, point: Point) -> bool:
        return any(
            point_in_polygon_with_holes(point, ext, polygon.holes)
            for ext in polygon.exteriors
        )

    def _emit(self, cell: str, country_id: int) -> None:
        ids = self._index.setdefault(cell, [])
        if country_id not in ids:
            ids.append(country_id)
        self.stats.max_precision_reached = max(self.stats.max_precision_reached, len(cell))

    def _build_cell(
        self,
        cell: str,
        edges: Sequence[Edge],
        country_id: int,
        polygon: PolygonGeometry,
        country_box: BBox,
    ) -> None:
        self.stats.cells_visited += 1
        decoded = geohash.decode(cell)
        box = _cell_box(decoded)

        if not boxes_overlap(box, country_box):
            return

        crossing = [e for e in edges if segment_intersects_box(e[0], e[1], box)]
        precision = len(cell)

        if not crossing:
            # Uniform cell: wholly inside or wholly outside
            if not self._contains(polygon, (decoded.lat, decoded.lon)):
                return
            if precision >= self.config.min_precision:
                self._emit(cell, country_id)
                self.stats.interior_cells += 1
                return
        elif precision >= self.config.max_precision:
            self._emit(cell, country_id)
            self.stats.boundary_cells += 1
            return

        self.stats.cells_split += 1
        for child in geohash.children(cell):
            self._build_cell(child, crossing, country_id, polygon, country_box)

    def _push_down(self) -> None:
        """Merge every ancestor key's countries into its existing descendants."""
        for key in sorted(self._index, key=len):
            inherited: List[int] = []
            for length in range(1, len(key)):
                inherited.extend(self._index.get(key[:length], ()))
            if inherited:
                self._index[key] = list(dict.fromkeys(inherited + self._index[key]))


def build_geohash_index(
    polygons: Mapping[int, PolygonGeometry],
    max_precision: int = 5,
    min_precision: int = 1,
) -> Tuple[Dict[str, List[int]], IndexStats]:
    """
    Convenience function to build a geohash index.

    Args:
        polygons: Mapping from country ID to polygon
        max_precision: Precision at which boundary cells stop splitting
        min_precision: Shortest key length emitted

    Returns:
        Tuple of (index, IndexStats)
    """
    config = IndexBuilderConfig(max_precision=max_precision, min_precision=min_precision)
    builder = GeohashIndexBuilder(polygons, config)
    index = builder.build()
    return index, builder.stats
