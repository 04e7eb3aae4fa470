# IRIS sectors of a city: cached geometry + housing units from the static dataset

import json
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Sequence

from redis.exceptions import RedisError

from distri.core import config
from distri.core.logging import get_logger
from distri.integrations.opendatasoft import (
    Commune,
    GeocodingError,
    OpenDataSoftClient,
    commune_feature,
)
from distri.schemas.participation import SectorChoice
from distri.services.dataset import City, StaticDataset
from distri.services.name_matcher import build_index, code_variants, resolve, to_housing_count
from distri.services.tour_status import SelectionRejected

logger = get_logger(__name__)

CACHE_KEY_PREFIX = "iris:"


class CommuneNotFound(Exception):
    def __init__(self, city: str):
        super().__init__(city)
        self.message = f"Commune introuvable : {city}"
        self.status_code = 404


class ResolvedSector(NamedTuple):
    """A selected sector as known server-side; `code` identifies it for the cap counts."""

    code: str
    name: str
    housing_units: int


SectorLookup = Callable[[str], Optional[ResolvedSector]]


def _feature_lookup(features: List[Dict[str, Any]]) -> SectorLookup:
    by_code = {str(f["properties"]["code"]): f["properties"] for f in features}

    def lookup(code: str) -> Optional[ResolvedSector]:
        props = by_code.get(code)
        if props is None:
            return None
        return ResolvedSector(code, str(props.get("name") or code), int(props.get("logements") or 0))

    return lookup


def _dataset_lookup(dataset: StaticDataset, city: City) -> SectorLookup:
    """Code lookup over the static rows only (case / padding variants of the code)."""
    entries = {e.code.strip(): e for e in dataset.iris_entries(city.name) if e.code}

    def lookup(code: str) -> Optional[ResolvedSector]:
        for variant in code_variants(code):
            entry = entries.get(variant)
            if entry is not None:
                return ResolvedSector(variant, entry.name, to_housing_count(entry.housing_units) or 0)
        return None

    return lookup


def annotate_features(
    features: List[Dict[str, Any]],
    index: Dict[str, int],
    commune_housing_units: Optional[int],
) -> List[Dict[str, Any]]:
    """Copy of `features` with properties.logements resolved for every sector."""
    annotated = []
    for feature in features:
        props = dict(feature.get("properties") or {})
        props["logements"] = resolve(
            index,
            props.get("name"),
            code=props.get("code"),
            api_properties=feature.get("properties"),
            commune_housing_units=commune_housing_units,
            sector_count=len(features),
        )
        annotated.append({**feature, "properties": props})
    return annotated


class IrisService:
    def __init__(self, geocoder: OpenDataSoftClient, cache: Any, dataset: StaticDataset):
        self.geocoder = geocoder
        self.cache = cache
        self.dataset = dataset

    async def _cache_get(self, key: str) -> Optional[List[Dict[str, Any]]]:
        try:
            cached = await self.cache.get(key)
        except RedisError as exc:
            logger.warning("iris_cache_unavailable", key=key, error=str(exc))
            return None
        if cached is None:
            return None
        try:
            return json.loads(cached)
        except ValueError:
            logger.warning("iris_cache_corrupt", key=key)
            return None

    async def _cache_set(self, key: str, features: List[Dict[str, Any]]) -> None:
        try:
            await self.cache.setex(key, config.IRIS_CACHE_TTL_SEC, json.dumps(features))
        except RedisError as exc:
            logger.warning("iris_cache_unavailable", key=key, error=str(exc))

    async def _features(self, commune: Commune, city: City) -> List[Dict[str, Any]]:
        key = f"{CACHE_KEY_PREFIX}{commune.code}"
        cached = await self._cache_get(key)
        if cached is not None:
            return cached

        features = await self.geocoder.fetch_iris_features(commune.code)
        if not features:
            single = commune_feature(commune, city.housing_units)
            features = [single] if single else []
        if features:
            await self._cache_set(key, features)
        return features

    async def get_sectors(self, city: City) -> Dict[str, Any]:
        """
        FeatureCollection of the city's IRIS sectors, each with properties.logements.
        Raises CommuneNotFound / GeocodingError.
        """
        commune = await self.geocoder.find_commune(city.name)
        if commune is None:
            raise CommuneNotFound(city.name)
        features = await self._features(commune, city)
        index = build_index(self.dataset.iris_entries(city.name))
        annotated = annotate_features(features, index, city.housing_units)
        logger.info(
            "iris_sectors_loaded",
            city=city.name,
            commune_code=commune.code,
            sectors=len(annotated),
            indexed_keys=len(index),
        )
        return {
            "type": "FeatureCollection",
            "commune": {"code": commune.code, "name": commune.name},
            "features": annotated,
        }

    async def resolve_sector_units(self, city: City, sectors: Sequence[SectorChoice]) -> List[ResolvedSector]:
        """
        Server-side code, name and housing units of each selected sector, in
        selection order, one entry per distinct sector.

        Codes are checked against the city's geometry when the API answers, and
        against the static dataset codes otherwise. The name sent by the client
        is never used to look up a count. Raises SelectionRejected("unknown_sector").
        """
        try:
            collection = await self.get_sectors(city)
            lookup = _feature_lookup(collection["features"])
        except (GeocodingError, CommuneNotFound) as exc:
            logger.warning("iris_geometry_unavailable", city=city.name, error=str(exc))
            lookup = _dataset_lookup(self.dataset, city)

        resolved: List[ResolvedSector] = []
        seen = set()
        for sector in sectors:
            found = lookup(sector.code)
            if found is None:
                logger.info("unknown_sector_rejected", city=city.name, code=sector.code)
                raise SelectionRejected(
                    "unknown_sector",
                    f"Secteur inconnu pour {city.name} : {sector.code}.",
                    status_code=400,
                )
            if found.code in seen:
                continue
            seen.add(found.code)
            resolved.append(found)
        return resolved
