"""
Natural Earth country source backed by DuckDB's spatial extension.

Reads an ADM0 shapefile (or a zip containing one), extracts each country's
geometry as GeoJSON and its descriptive fields, and converts them into the
polygon and metadata tables used by the data store.
"""

import json
import logging
import shutil
import tempfile
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Set

import duckdb

from .geometry import geojson_to_latlon
from .models import ISO_SENTINEL, CountryMetadata, PolygonGeometry

logger = logging.getLogger(__name__)


@dataclass
class NaturalEarthFields:
    """Attribute names to read from the shapefile."""

    name: str = "NAME"
    iso2: str = "ISO_A2"
    iso2_fallback: Optional[str] = "ISO_A2_EH"
    iso3: str = "ISO_A3"
    iso3_fallback: Optional[str] = "ISO_A3_EH"
    continent: str = "CONTINENT"
    timezone: Optional[str] = None

    def __post_init__(self):
        for label in ("name", "iso2", "iso3", "continent"):
            if not getattr(self, label):
                raise ValueError(f"{label} field name must not be empty")


def _clean_code(value) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


class NaturalEarthSource:
    """
    Country polygons and metadata read from a Natural Earth shapefile.

    Country IDs are assigned from 1 in order of ISO3 code then name, so the
    same shapefile always yields the same IDs.
    """

    def __init__(
        self,
        shapefile_path: Path,
        fields: Optional[NaturalEarthFields] = None,
        simplify_tolerance: Optional[float] = None,
    ):
        """
        Args:
            shapefile_path: Path to shapefile (.shp) or zip containing one
            fields: Attribute names to read
            simplify_tolerance: If set, simplify geometries by this many
                degrees with ST_SimplifyPreserveTopology
        """
        self.fields = fields or NaturalEarthFields()
        self.simplify_tolerance = simplify_tolerance
        self._polygons: Dict[int, PolygonGeometry] = {}
        self._metadata: Dict[int, CountryMetadata] = {}

        if simplify_tolerance is not None and simplify_tolerance <= 0:
            raise ValueError("simplify_tolerance must be positive")

        # Handle zip files
        self._temp_dir: Optional[Path] = None
        shapefile_path = Path(shapefile_path)
        if shapefile_path.suffix == ".zip":
            self._temp_dir = Path(tempfile.mkdtemp())
            with zipfile.ZipFile(shapefile_path, "r") as zf:
                zf.extractall(self._temp_dir)
            shp_files = list(self._temp_dir.glob("**/*.shp"))
            if not shp_files:
                self.close()
                raise ValueError(f"No .shp file found in {shapefile_path}")
            shapefile_path = shp_files[0]

        self._shapefile_path = shapefile_path

        self._con = duckdb.connect(":memory:")
        self._con.install_extension("spatial")
        self._con.load_extension("spatial")

        self._load_shapefile()
        self._read_countries()

    def _load_shapefile(self) -> None:
        """Load shapefile into DuckDB."""
        logger.info("Loading shapefile %s", self._shapefile_path)
        self._con.execute(
            "CREATE TABLE countries AS SELECT * FROM st_read(?)",
            [str(self._shapefile_path)],
        )

    def _columns(self) -> Set[str]:
        rows = self._con.execute("DESCRIBE countries").fetchall()
        return {row[0] for row in rows}

    def _read_countries(self) -> None:
        """Read every feature and assign country IDs."""
        columns = self._columns()
        f = self.fields

        def column(name: Optional[str]) -> str:
            if name and name in columns:
                return f'"{name}"'
            return "NULL"

        geom = "geom"
        if self.simplify_tolerance is not None:
            geom = f"ST_SimplifyPreserveTopology(geom, {float(self.simplify_tolerance)})"

        rows = self._con.execute(f"""
            SELECT
                {column(f.name)} AS name,
                {column(f.iso2)} AS iso2,
                {column(f.iso2_fallback)} AS iso2_fallback,
                {column(f.iso3)} AS iso3,
                {column(f.iso3_fallback)} AS iso3_fallback,
                {column(f.continent)} AS continent,
                {column(f.timezone)} AS timezone,
                ST_AsGeoJSON({geom}) AS geometry
            FROM countries
            WHERE geom IS NOT NULL
            ORDER BY {column(f.iso3)}, {column(f.name)}
        """).fetchall()

        country_id = 0
        for name, iso2, iso2_fallback, iso3, iso3_fallback, continent, timezone, geometry in rows:
            polygon = self._to_polygon(json.loads(geometry)) if geometry else None
            if polygon is None:
                logger.warning("Skipping %s: no polygon geometry", name)
                continue

            iso2 = _clean_code(iso2)
            if iso2 in (None, ISO_SENTINEL):
                iso2 = _clean_code(iso2_fallback) or iso2
            iso3 = _clean_code(iso3)
            if iso3 in (None, ISO_SENTINEL):
                iso3 = _clean_code(iso3_fallback) or iso3

            country_id += 1
            self._polygons[country_id] = polygon
            self._metadata[country_id] = CountryMetadata(
                name=str(name or ""),
                iso2=iso2,
                iso3=iso3,
                continent=_clean_code(continent),
                timezone=_clean_code(timezone),
            )

        logger.info("Read %d countries", len(self._metadata))

    @staticmethod
    def _to_polygon(geometry: dict) -> Optional[PolygonGeometry]:
        """
        Convert a GeoJSON Polygon or MultiPolygon to a PolygonGeometry.

        All interior rings of a MultiPolygon are collected into one shared
        holes list.
        """
        kind = geometry.get("type")
        if kind == "Polygon":
            parts = [geometry["coordinates"]]
        elif kind == "MultiPolygon":
            parts = geometry["coordinates"]
        else:
            return None

        exteriors: List[tuple] = []
        holes: List[tuple] = []
        for rings in parts:
            if not rings:
                continue
            exteriors.append(tuple(geojson_to_latlon(rings[0])))
            holes.extend(tuple(geojson_to_latlon(r)) for r in rings[1:])

        if not exteriors:
            return None
        return PolygonGeometry(
            exteriors=tuple(exteriors),
            holes=tuple(holes),
            multi=len(exteriors) > 1,
        )

    def polygons(self) -> Dict[int, PolygonGeometry]:
        """Mapping from country ID to polygon."""
        return dict(self._polygons)

    def metadata(self) -> Dict[int, CountryMetadata]:
        """Mapping from country ID to metadata."""
        return dict(self._metadata)

    def get_country_count(self) -> int:
        return len(self._metadata)

    def close(self) -> None:
        """Close the database connection and clean up temporary files."""
        con = getattr(self, "_con", None)
        if con is not None:
            con.close()
            self._con = None

        temp_dir = getattr(self, "_temp_dir", None)
        if temp_dir and temp_dir.exists():
            shutil.rmtree(temp_dir)
            self._temp_dir = None

    def __del__(self):
        self.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def open_natural_earth(
    data_dir: Path,
    filename: str = "ne_10m_admin_0_countries.zip",
    simplify_tolerance: Optional[float] = None,
) -> NaturalEarthSource:
    """
    Convenience function to open Natural Earth data from a directory.

    Args:
        data_dir: Directory containing the shapefile or zip
        filename: Name of the shapefile or zip file
        simplify_tolerance: Optional simplification tolerance in degrees

    Returns:
        NaturalEarthSource instance
    """
    shapefile_path = Path(data_dir) / filename

    # Try the given name first, then the unzipped .shp
    if not shapefile_path.exists():
        shp_path = Path(data_dir) / filename.replace(".zip", ".shp")
        if shp_path.exists():
            shapefile_path = shp_path
        else:
            raise FileNotFoundError(
                f"Could not find {filename} or corresponding .shp in {data_dir}"
            )

    return NaturalEarthSource(shapefile_path, simplify_tolerance=simplify_tolerance)
