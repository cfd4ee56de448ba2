"""
Data file serialization.

The data set is three JSON tables in one directory, each optionally gzip
compressed:

- geohash_index.json: {"<geohash>": [country_id, ...]}
- polygons.json:      {"<country_id>": {"exterior": [[lat, lon], ...],
                                        "holes": [[[lat, lon], ...], ...],
                                        "multi": bool,
                                        "exteriors": [[[lat, lon], ...], ...]}}
- metadata.json:      {"<country_id>": {"name", "iso2", "iso3",
                                        "continent", "timezone"}}

Compressed files (`<name>.json.gz`) are preferred when both forms exist.
This module also converts result records to plain dictionaries for callers
that need JSON output.
"""

import gzip
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Union

from .models import (
    CountryMetadata,
    PolygonGeometry,
    ResolutionResult,
    ReverseResolutionResult,
)
from .store import InMemoryDataStore

logger = logging.getLogger(__name__)

GEOHASH_INDEX_FILE = "geohash_index.json"
POLYGONS_FILE = "polygons.json"
METADATA_FILE = "metadata.json"


def _ring_to_list(ring) -> List[List[float]]:
    return [[float(p[0]), float(p[1])] for p in ring]


def _ring_from_list(coords: Iterable) -> tuple:
    return tuple((float(c[0]), float(c[1])) for c in coords)


def polygon_to_dict(polygon: PolygonGeometry) -> Dict[str, Any]:
    """
    Serialize a polygon to its JSON table form.

    Polygons with more than one exterior carry all rings in "exteriors" and
    the first one in "exterior" so readers that ignore "exteriors" still get
    a usable ring.
    """
    data: Dict[str, Any] = {
        "exterior": _ring_to_list(polygon.exterior),
        "holes": [_ring_to_list(h) for h in polygon.holes],
    }
    if polygon.multi:
        data["multi"] = True
    if polygon.multi or len(polygon.exteriors) > 1:
        data["exteriors"] = [_ring_to_list(e) for e in polygon.exteriors]
    return data


def polygon_from_dict(data: Mapping[str, Any]) -> PolygonGeometry:
    """
    Deserialize a polygon from its JSON table form.

    Raises:
        ValueError: If the record has no exterior ring
    """
    if data.get("exteriors"):
        exteriors = tuple(_ring_from_list(e) for e in data["exteriors"] if e)
        multi = bool(data.get("multi"))
    elif data.get("exterior"):
        exteriors = (_ring_from_list(data["exterior"]),)
        multi = False
    else:
        raise ValueError("Polygon record has no exterior ring")

    holes = tuple(_ring_from_list(h) for h in data.get("holes") or () if h)
    return PolygonGeometry(exteriors=exteriors, holes=holes, multi=multi)


def metadata_to_dict(metadata: CountryMetadata) -> Dict[str, Any]:
    return {
        "name": metadata.name,
        "iso2": metadata.iso2,
        "iso3": metadata.iso3,
        "continent": metadata.continent,
        "timezone": metadata.timezone,
    }


def metadata_from_dict(data: Mapping[str, Any]) -> CountryMetadata:
    return CountryMetadata(
        name=data.get("name") or "",
        iso2=data.get("iso2") or None,
        iso3=data.get("iso3") or None,
        continent=data.get("continent") or None,
        timezone=data.get("timezone") or None,
    )


def _write_json(path: Path, payload: Any, compress: bool) -> Path:
    data = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    if compress:
        path = path.with_name(path.name + ".gz")
        data = gzip.compress(data, compresslevel=9)
    path.write_bytes(data)
    logger.info("Wrote %d bytes to %s", len(data), path)
    return path


def _read_json(data_dir: Path, filename: str) -> Any:
    plain = data_dir / filename
    compressed = data_dir / f"{filename}.gz"

    if compressed.exists():
        logger.debug("Reading %s", compressed)
        return json.loads(gzip.decompress(compressed.read_bytes()).decode("utf-8"))
    if plain.exists():
        logger.debug("Reading %s", plain)
        return json.loads(plain.read_text(encoding="utf-8"))

    raise FileNotFoundError(
        f"Data file not found: {compressed} or {plain}"
    )


def write_data_files(
    data_dir: Union[str, Path],
    geohash_index: Mapping[str, Iterable[int]],
    polygons: Mapping[int, PolygonGeometry],
    metadata: Mapping[int, CountryMetadata],
    compress: bool = True,
) -> List[Path]:
    """
    Write the three data tables to a directory.

    Args:
        data_dir: Output directory (created if missing)
        geohash_index: Mapping from geohash key to country IDs
        polygons: Mapping from country ID to polygon
        metadata: Mapping from country ID to metadata
        compress: Write gzip-compressed `.json.gz` files

    Returns:
        Paths of the written files
    """
    data_dir = Path(data_dir)
    data_dir.mkdir(parents=True, exist_ok=True)

    # Candidate order decides ties between equal-confidence matches
    index_payload = {key: list(dict.fromkeys(ids)) for key, ids in sorted(geohash_index.items())}
    polygons_payload = {str(cid): polygon_to_dict(p) for cid, p in polygons.items()}
    metadata_payload = {str(cid): metadata_to_dict(m) for cid, m in metadata.items()}

    return [
        _write_json(data_dir / GEOHASH_INDEX_FILE, index_payload, compress),
        _write_json(data_dir / POLYGONS_FILE, polygons_payload, compress),
        _write_json(data_dir / METADATA_FILE, metadata_payload, compress),
    ]


def load_data_store(data_dir: Union[str, Path]) -> InMemoryDataStore:
    """
    Load the data tables from a directory into an in-memory store.

    Args:
        data_dir: Directory containing the three tables

    Returns:
        Populated InMemoryDataStore

    Raises:
        FileNotFoundError: If a table is missing in both forms
    """
    data_dir = Path(data_dir)

    raw_index = _read_json(data_dir, GEOHASH_INDEX_FILE)
    raw_polygons = _read_json(data_dir, POLYGONS_FILE)
    raw_metadata = _read_json(data_dir, METADATA_FILE)

    geohash_index = {
        key: ids if isinstance(ids, list) else [ids]
        for key, ids in raw_index.items()
    }
    polygons = {int(cid): polygon_from_dict(p) for cid, p in raw_polygons.items()}
    metadata = {int(cid): metadata_from_dict(m) for cid, m in raw_metadata.items()}

    logger.info(
        "Loaded %d countries, %d polygons and %d index cells from %s",
        len(metadata), len(polygons), len(geohash_index), data_dir,
    )
    return InMemoryDataStore(geohash_index, polygons, metadata)


def result_to_dict(
    result: Union[ResolutionResult, ReverseResolutionResult]
) -> Dict[str, Any]:
    """
    Convert a resolution result to a plain dictionary.

    Reverse results additionally carry "latitude" and "longitude".
    """
    data: Dict[str, Any] = {}
    if isinstance(result, ReverseResolutionResult):
        data["latitude"] = result.latitude
        data["longitude"] = result.longitude

    data.update({
        "country": result.name,
        "iso2": result.iso2,
        "iso3": result.iso3,
        "continent": result.continent,
        "timezone": result.timezone,
        "confidence": result.confidence,
    })
    return data
