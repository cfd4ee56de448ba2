"""
Read-only data store interface consumed by the resolver.

A store maps geohash keys to candidate country IDs and country IDs to
polygons and metadata. It is populated once (see `serialize.load_data_store`
or the offline builder) and never mutated afterwards, so a single instance
can be shared by any number of resolvers and threads.
"""

from abc import ABC, abstractmethod
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from .models import CountryMetadata, PolygonGeometry


class DataStore(ABC):
    """
    Abstract base class for country data stores.

    Subclasses provide the three tables; prefix fallback for candidate
    lookup is implemented here on top of `index_entry`.
    """

    @abstractmethod
    def index_entry(self, geohash: str) -> Optional[List[int]]:
        """
        Return the country IDs stored under exactly this geohash key.

        Returns:
            List of country IDs, or None if the key is absent
        """
        pass

    @abstractmethod
    def polygon(self, country_id: int) -> Optional[PolygonGeometry]:
        """Return the polygon for a country, or None if unknown."""
        pass

    @abstractmethod
    def metadata(self, country_id: int) -> Optional[CountryMetadata]:
        """Return the metadata for a country, or None if unknown."""
        pass

    @abstractmethod
    def all_country_ids(self) -> List[int]:
        """Return every country ID known to the store, in a stable order."""
        pass

    def metadata_items(self) -> Iterator[Tuple[int, CountryMetadata]]:
        """
        Iterate over (country_id, metadata) pairs in `all_country_ids` order.

        Subclasses may override with a cheaper traversal.
        """
        for country_id in self.all_country_ids():
            meta = self.metadata(country_id)
            if meta is not None:
                yield country_id, meta

    def candidate_countries(self, geohash: str) -> List[int]:
        """
        Get candidate country IDs for a geohash.

        Tries the exact key first, then successively shorter prefixes,
        returning the first non-empty entry.

        Args:
            geohash: Geohash string

        Returns:
            Deduplicated list of country IDs (empty if nothing matches)
        """
        for length in range(len(geohash), 0, -1):
            entry = self.index_entry(geohash[:length])
            if entry:
                return list(dict.fromkeys(entry))
        return []


class InMemoryDataStore(DataStore):
    """
    Data store backed by dictionaries.

    The constructor copies the input tables; afterwards only read-only
    views are exposed.
    """

    def __init__(
        self,
        geohash_index: Mapping[str, Iterable[int]],
        polygons: Mapping[int, PolygonGeometry],
        metadata: Mapping[int, CountryMetadata],
    ):
        """
        Args:
            geohash_index: Mapping from geohash key to country IDs
            polygons: Mapping from country ID to polygon geometry
            metadata: Mapping from country ID to metadata
        """
        self._index: Dict[str, Tuple[int, ...]] = {
            key: tuple(ids) for key, ids in geohash_index.items()
        }
        self._polygons: Dict[int, PolygonGeometry] = dict(polygons)
        self._metadata: Dict[int, CountryMetadata] = dict(metadata)
        self._country_ids: Tuple[int, ...] = tuple(self._metadata.keys())

    @property
    def geohash_index(self) -> Mapping[str, Tuple[int, ...]]:
        return MappingProxyType(self._index)

    @property
    def polygons(self) -> Mapping[int, PolygonGeometry]:
        return MappingProxyType(self._polygons)

    @property
    def metadata_table(self) -> Mapping[int, CountryMetadata]:
        return MappingProxyType(self._metadata)

    def index_entry(self, geohash: str) -> Optional[List[int]]:
        entry = self._index.get(geohash)
        return list(entry) if entry is not None else None

    def polygon(self, country_id: int) -> Optional[PolygonGeometry]:
        return self._polygons.get(country_id)

    def metadata(self, country_id: int) -> Optional[CountryMetadata]:
        return self._metadata.get(country_id)

    def all_country_ids(self) -> List[int]:
        return list(self._country_ids)

    def metadata_items(self) -> Iterator[Tuple[int, CountryMetadata]]:
        return iter(self._metadata.items())

    def __len__(self) -> int:
        return len(self._country_ids)
