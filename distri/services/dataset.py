# Read-only static dataset: eligible cities and per-city IRIS housing units

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from distri.core import config
from distri.core.logging import get_logger
from distri.services.name_matcher import IrisEntry, normalize_name, simplify, to_housing_count

logger = get_logger(__name__)

DEFAULT_DEPARTEMENT = "Non spécifié"
DEFAULT_REGION = "Non spécifiée"
NON_IRISEE = "non irisee"

# "Lyon 3e Arrondissement", "Marseille 1er", "Paris 10eme arrondissement" once normalized
_DISTRICT_SUFFIX = re.compile(r"^\d+\s*(er|e|eme)?(\s+arrondissement)?$")


@dataclass(frozen=True)
class City:
    name: str
    housing_units: int
    departement: str = DEFAULT_DEPARTEMENT
    region: str = DEFAULT_REGION


def _read_json_list(path: Path) -> List[Dict[str, Any]]:
    # json accepts the bare NaN literals present in the source export
    with open(path, encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a JSON list")
    return [row for row in data if isinstance(row, dict)]


def load_communes(path: Path) -> List[Dict[str, Any]]:
    rows = _read_json_list(path)
    for row in rows:
        row["logements"] = to_housing_count(row.get("logements"))
    return rows


def load_iris_dataset(path: Path) -> List[Dict[str, Any]]:
    rows = _read_json_list(path)
    for row in rows:
        row["iris"] = [i for i in (row.get("iris") or []) if isinstance(i, dict)]
    return rows


def list_cities(communes: List[Dict[str, Any]]) -> List[City]:
    """Cities with at least MIN_HOUSING_UNITS, duplicates merged by name, sorted by name."""
    merged: Dict[str, City] = {}
    for row in communes:
        name = str(row.get("ville") or "").strip()
        units = row.get("logements") or 0
        if not name or not units:
            continue
        current = merged.get(name)
        if current is None:
            merged[name] = City(
                name=name,
                housing_units=units,
                departement=row.get("departement") or DEFAULT_DEPARTEMENT,
                region=row.get("region") or DEFAULT_REGION,
            )
        else:
            merged[name] = City(
                name=name,
                housing_units=current.housing_units + units,
                departement=current.departement,
                region=current.region,
            )
    cities = [c for c in merged.values() if c.housing_units >= config.MIN_HOUSING_UNITS]
    return sorted(cities, key=lambda c: simplify(c.name))


def find_city(cities: List[City], name: str) -> Optional[City]:
    target = simplify(name)
    for city in cities:
        if simplify(city.name) == target:
            return city
    target = normalize_name(name)
    for city in cities:
        if normalize_name(city.name) == target:
            return city
    return None


def _is_district_of(row_name: str, city_name: str) -> bool:
    if not row_name.startswith(city_name + " "):
        return False
    return bool(_DISTRICT_SUFFIX.match(row_name[len(city_name) + 1 :]))


def find_city_iris_rows(dataset: List[Dict[str, Any]], city_name: str) -> List[Dict[str, Any]]:
    """
    Dataset rows for a city: exact normalized name, then lowercase name, then
    containment. A city split into arrondissements returns every district row.
    """
    target = normalize_name(city_name)
    if not target:
        return []

    districts = [r for r in dataset if _is_district_of(normalize_name(r.get("ville")), target)]
    if districts:
        return districts

    for row in dataset:
        if normalize_name(row.get("ville")) == target:
            return [row]
    lowered = city_name.lower().strip()
    for row in dataset:
        if str(row.get("ville") or "").lower().strip() == lowered:
            return [row]
    for row in dataset:
        name = normalize_name(row.get("ville"))
        if name and (target in name or name in target):
            return [row]
    return []


def find_city_iris_entries(dataset: List[Dict[str, Any]], city_name: str) -> List[IrisEntry]:
    entries = []
    for row in find_city_iris_rows(dataset, city_name):
        for record in row["iris"]:
            entry = IrisEntry.from_record(record)
            if NON_IRISEE in simplify(entry.name):
                continue
            entries.append(entry)
    return entries


@dataclass
class StaticDataset:
    """Both JSON files loaded once per process."""

    cities: List[City]
    iris_rows: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dir(cls, data_dir: Optional[Path] = None) -> "StaticDataset":
        data_dir = Path(data_dir or config.DATA_DIR)
        communes = load_communes(data_dir / config.COMMUNES_FILE)
        iris_path = data_dir / config.IRIS_FILE
        iris_rows = load_iris_dataset(iris_path) if iris_path.exists() else []
        dataset = cls(cities=list_cities(communes), iris_rows=iris_rows)
        logger.info(
            "static_dataset_loaded",
            data_dir=str(data_dir),
            cities=len(dataset.cities),
            iris_cities=len(iris_rows),
        )
        return dataset

    def find_city(self, name: str) -> Optional[City]:
        return find_city(self.cities, name)

    def iris_entries(self, city_name: str) -> List[IrisEntry]:
        return find_city_iris_entries(self.iris_rows, city_name)
