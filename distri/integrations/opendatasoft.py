# OpenDataSoft public API: commune lookup and paginated IRIS geometries

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx
from shapely.errors import ShapelyError
from shapely.geometry import shape

from distri.core import config
from distri.core.logging import get_logger
from distri.services.name_matcher import API_HOUSING_KEYS, simplify

logger = get_logger(__name__)

RECORDS_PATH = "/api/explore/v2.1/catalog/datasets/{dataset}/records"
COMMUNE_DATASET = "georef-france-commune"
IRIS_DATASET = "georef-france-iris"
PARIS_CODE = "75056"
NON_IRISEE_PREFIX = "COMMUNE_NON_IRISEE_"

_PARIS_ARRONDISSEMENT = re.compile(r"Paris\s+(\d+)(?:er|e|ème|eme)?\s+Arrondissement", re.IGNORECASE)


class GeocodingError(RuntimeError):
    """The geometry API could not be reached or answered with an error."""


@dataclass(frozen=True)
class Commune:
    code: str
    name: str
    geo_shape: Optional[Dict[str, Any]] = None


def _first(value: Any) -> Any:
    """ODS returns some fields as single-item lists."""
    if isinstance(value, list):
        return value[0] if value else None
    return value


def _quote(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def paris_arrondissement_code(name: str) -> Optional[str]:
    """'Paris 10e Arrondissement' -> '75110'"""
    match = _PARIS_ARRONDISSEMENT.search(name or "")
    if not match:
        return None
    number = int(match.group(1))
    if not 1 <= number <= 20:
        return None
    return f"751{number:02d}"


def is_non_irisee(name: Any) -> bool:
    return "non irisee" in simplify(name)


def _geometry(geo_shape: Any) -> Optional[Dict[str, Any]]:
    if not isinstance(geo_shape, dict):
        return None
    geometry = geo_shape.get("geometry") if geo_shape.get("type") == "Feature" else geo_shape
    if not isinstance(geometry, dict) or not geometry.get("type"):
        return None
    return geometry


def _centroid(geometry: Dict[str, Any]) -> Optional[Dict[str, float]]:
    """Label point inside the polygon; None when shapely rejects the geometry."""
    try:
        geom = shape(geometry)
        if geom.is_empty:
            return None
        point = geom.representative_point()
    except (ShapelyError, ValueError, TypeError, KeyError, IndexError, AttributeError):
        return None
    return {"lat": point.y, "lng": point.x}


def to_feature(record: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    ODS IRIS record -> GeoJSON feature with standardized properties
    (code_iris, nom_iris, code, name, centroid, + housing units when the API has them).
    """
    code = _first(record.get("iris_code"))
    name = _first(record.get("iris_name"))
    if not code:
        return None
    if name and is_non_irisee(name):
        return None
    geometry = _geometry(record.get("geo_shape"))
    if geometry is None:
        return None
    centroid = _centroid(geometry)
    if centroid is None:
        return None

    code = str(code)
    name = str(name or code)
    properties: Dict[str, Any] = {
        "code_iris": code,
        "nom_iris": name,
        "code": code,
        "name": name,
        "centroid": centroid,
    }
    for key in API_HOUSING_KEYS:
        if record.get(key) is not None:
            properties[key] = record[key]
    return {"type": "Feature", "geometry": geometry, "properties": properties}


def commune_feature(commune: Commune, housing_units: int) -> Optional[Dict[str, Any]]:
    """Single pseudo-sector covering a commune that has no IRIS subdivision."""
    geometry = _geometry(commune.geo_shape)
    if geometry is None:
        return None
    centroid = _centroid(geometry)
    if centroid is None:
        return None
    code = f"{NON_IRISEE_PREFIX}{commune.code}"
    return {
        "type": "Feature",
        "geometry": geometry,
        "properties": {
            "code_iris": code,
            "nom_iris": commune.name,
            "code": code,
            "name": commune.name,
            "centroid": centroid,
            "logements": housing_units,
        },
    }


class OpenDataSoftClient:
    """Thin async client. Every transport or HTTP error surfaces as GeocodingError."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        page_size: Optional[int] = None,
        max_offset: Optional[int] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or config.OPENDATASOFT_BASE_URL).rstrip("/")
        self.page_size = page_size or config.IRIS_PAGE_SIZE
        self.max_offset = max_offset or config.IRIS_MAX_OFFSET
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self._transport)

    async def _records(self, client: httpx.AsyncClient, dataset: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        try:
            resp = await client.get(RECORDS_PATH.format(dataset=dataset), params=params)
        except httpx.HTTPError as exc:
            raise GeocodingError(f"OpenDataSoft unreachable: {exc}") from exc
        if resp.status_code != 200:
            raise GeocodingError(f"OpenDataSoft error: HTTP {resp.status_code}")
        try:
            data = resp.json()
        except ValueError as exc:
            raise GeocodingError(f"OpenDataSoft error: invalid JSON ({exc})") from exc
        if not isinstance(data, dict):
            raise GeocodingError("OpenDataSoft error: unexpected payload")
        results = data.get("results") or []
        if not isinstance(results, list):
            raise GeocodingError("OpenDataSoft error: unexpected payload")
        return results

    async def find_commune(self, name: str) -> Optional[Commune]:
        arrondissement = paris_arrondissement_code(name)
        if arrondissement:
            where = f"com_code = {_quote(arrondissement)}"
        else:
            where = f"com_name like {_quote(name)}"

        async with self._client() as client:
            results = await self._records(client, COMMUNE_DATASET, {"where": where, "limit": 1})

        if not results:
            if arrondissement:
                return Commune(code=arrondissement, name=name)
            return None
        record = results[0]
        code = _first(record.get("com_code")) or arrondissement
        if not code:
            return None
        return Commune(
            code=str(code),
            name=str(_first(record.get("com_name")) or name),
            geo_shape=record.get("geo_shape"),
        )

    async def fetch_iris_records(self, commune_code: str) -> List[Dict[str, Any]]:
        """All IRIS records of a commune, page by page, up to max_offset."""
        records: List[Dict[str, Any]] = []
        offset = 0
        async with self._client() as client:
            while offset < self.max_offset:
                page = await self._records(
                    client,
                    IRIS_DATASET,
                    {
                        "where": f"com_code = {_quote(commune_code)}",
                        "limit": self.page_size,
                        "offset": offset,
                    },
                )
                if not page:
                    break
                records.extend(page)
                if len(page) < self.page_size:
                    break
                offset += self.page_size
        logger.debug("ods_iris_fetched", commune_code=commune_code, records=len(records))
        return records

    async def fetch_iris_features(self, commune_code: str) -> List[Dict[str, Any]]:
        records = await self.fetch_iris_records(commune_code)
        if not records and commune_code.startswith("751") and commune_code != PARIS_CODE:
            # Some exports attach Paris IRIS to the city code only
            records = [
                r
                for r in await self.fetch_iris_records(PARIS_CODE)
                if str(_first(r.get("iris_code")) or "").startswith(commune_code)
            ]
        features = [f for f in (to_feature(r) for r in records) if f is not None]
        return features
