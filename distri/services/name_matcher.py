# IRIS housing-unit lookup: static dataset index + ordered matching strategies
#
# The IRIS names returned by the geometry API rarely match the static dataset
# byte for byte (case, accents, apostrophes, numbered districts, truncated codes).
# Every dataset row is indexed under several normalized keys, then each query
# walks STRATEGIES in order until one of them returns a count.

import math
import re
import unicodedata
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, NamedTuple, Optional, Tuple

from distri.core.logging import get_logger

logger = get_logger(__name__)

HousingIndex = Dict[str, int]

APOSTROPHES = ("'", "’", "ʼ", "`")
# Properties the geometry API may carry with a direct housing-unit count
API_HOUSING_KEYS = ("logements", "logements_iris", "nb_logements", "housing_units")

CONTAINMENT_MIN_SCORE = 0.25  # strictly greater
TOKEN_OVERLAP_MIN_SCORE = 0.5  # greater or equal
IRIS_CODE_LENGTH = 9

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_SPACES = re.compile(r"\s+")
_TRAILING_NUMBER = re.compile(r"^(.*?)\s*(\d+)$")


def strip_accents(value: str) -> str:
    decomposed = unicodedata.normalize("NFD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def simplify(value: Any) -> str:
    """Lowercase, accents stripped, trimmed. Punctuation is kept."""
    return strip_accents(str(value or "")).lower().strip()


def normalize_name(value: Any) -> str:
    """Lowercase, accents stripped, only [a-z0-9] words separated by single spaces."""
    text = _NON_ALNUM.sub("", simplify(value))
    return _SPACES.sub(" ", text).strip()


def significant_words(normalized: str, drop_numeric: bool = False) -> List[str]:
    words = [w for w in normalized.split() if len(w) >= 2]
    if drop_numeric:
        words = [w for w in words if not w.isdigit()]
    return words


def has_apostrophe(value: Any) -> bool:
    text = str(value or "")
    return any(a in text for a in APOSTROPHES)


def _replace_apostrophes(value: str, replacement: str) -> str:
    for apostrophe in APOSTROPHES:
        value = value.replace(apostrophe, replacement)
    return value


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def to_housing_count(value: Any) -> Optional[int]:
    """Positive integer count, or None for missing / NaN / non-positive values."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        value = value.replace("\u00a0", "").replace(" ", "").replace(",", ".")
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number) or number <= 0:
        return None
    count = round_half_up(number)
    return count if count > 0 else None


@dataclass(frozen=True)
class IrisEntry:
    """One IRIS row of the static dataset."""

    name: str
    housing_units: Any
    code: Optional[str] = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "IrisEntry":
        code = record.get("code_iris") or record.get("code")
        return cls(
            name=str(record.get("nom_iris") or record.get("nom") or ""),
            housing_units=record.get("logements_iris", record.get("logements")),
            code=str(code) if code not in (None, "") else None,
        )


class SectorQuery(NamedTuple):
    name: str
    code: Optional[str] = None


def _name_keys(name: str) -> List[str]:
    normalized = normalize_name(name)
    raw = str(name or "").lower().strip()
    keys = [
        normalized,
        raw,
        normalized.replace(" ", ""),
        _SPACES.sub("", raw),
        simplify(name),
    ]
    words = significant_words(normalized)
    if words:
        keys.append(" ".join(words))
        keys.append("".join(words))
    words = significant_words(normalized, drop_numeric=True)
    if words:
        keys.append(" ".join(words))
    if has_apostrophe(name):
        for replacement in ("", " "):
            variant = normalize_name(_replace_apostrophes(name, replacement))
            keys.append(variant)
            keys.append(variant.replace(" ", ""))
    return [k for k in keys if k]


def build_index(entries: Iterable[IrisEntry]) -> HousingIndex:
    """
    Map every key variant of every dataset row to its housing-unit count.
    Rows without a usable count are skipped. Later rows overwrite earlier ones
    on equal keys.
    """
    index: HousingIndex = {}
    for entry in entries:
        count = to_housing_count(entry.housing_units)
        if count is None:
            continue
        for key in _name_keys(entry.name):
            index[key] = count
        if entry.code:
            code = str(entry.code).strip()
            index[code.lower()] = count
            index[code] = count
    return index


def _first_hit(index: Mapping[str, int], keys: Iterable[str]) -> Optional[int]:
    for key in keys:
        if key and index.get(key):
            return index[key]
    return None


# ---------------------------------------------------------------------------
# Strategies: (query, index) -> count or None
# ---------------------------------------------------------------------------


def match_exact(query: SectorQuery, index: Mapping[str, int]) -> Optional[int]:
    return _first_hit(index, [normalize_name(query.name), query.name.lower().strip()])


def match_simplified(query: SectorQuery, index: Mapping[str, int]) -> Optional[int]:
    return _first_hit(
        index,
        [
            simplify(query.name),
            normalize_name(query.name).replace(" ", ""),
            _SPACES.sub("", query.name.lower()),
        ],
    )


def match_apostrophe(query: SectorQuery, index: Mapping[str, int]) -> Optional[int]:
    if not has_apostrophe(query.name):
        return None
    keys = []
    for replacement in ("", " "):
        variant = normalize_name(_replace_apostrophes(query.name, replacement))
        keys.append(variant)
        keys.append(variant.replace(" ", ""))
    return _first_hit(index, keys)


def split_trailing_number(normalized: str) -> Tuple[str, Optional[int]]:
    """'chapelle 7' -> ('chapelle', 7); a bare number or a name without one -> (name, None)."""
    match = _TRAILING_NUMBER.match(normalized)
    if not match or not match.group(1).strip():
        return normalized, None
    return match.group(1).strip(), int(match.group(2))


def match_trailing_number(query: SectorQuery, index: Mapping[str, int]) -> Optional[int]:
    base, number = split_trailing_number(normalize_name(query.name))
    if number is None or not base:
        return None
    unnumbered = None
    for key, count in index.items():
        key_base, key_number = split_trailing_number(key)
        if key_base != base or not count:
            continue
        if key_number == number:
            return count
        if key_number is None and unnumbered is None:
            unnumbered = count
    return unnumbered


def code_variants(code: Optional[str]) -> List[str]:
    code = str(code or "").strip()
    if not code:
        return []
    variants = [code, code.lower(), code.upper(), code.lstrip("0"), code.zfill(IRIS_CODE_LENGTH)]
    if len(code) > IRIS_CODE_LENGTH:
        variants.append(code[:IRIS_CODE_LENGTH])
    if len(code) >= 4:
        variants.append(code[-4:])
    seen = set()
    return [v for v in variants if v and not (v in seen or seen.add(v))]


def match_code(query: SectorQuery, index: Mapping[str, int]) -> Optional[int]:
    return _first_hit(index, code_variants(query.code))


def _tokens(text: str) -> List[str]:
    return [t for t in normalize_name(text).split() if len(t) >= 2 and not t.isdigit()]


def match_fuzzy(query: SectorQuery, index: Mapping[str, int]) -> Optional[int]:
    """
    Best non-exact key by substring containment (length ratio, must exceed 0.25)
    or token overlap (shared tokens / larger token set, must reach 0.5).
    Ties keep the first key in index order.
    """
    query_tokens = _tokens(query.name)
    if not query_tokens:
        return None
    query_text = " ".join(query_tokens)
    query_set = set(query_tokens)
    normalized = normalize_name(query.name)

    best_score = 0.0
    best_count: Optional[int] = None
    for key, count in index.items():
        if key == normalized or not count:
            continue
        key_tokens = _tokens(key)
        if not key_tokens:
            continue
        key_text = " ".join(key_tokens)
        key_set = set(key_tokens)

        score = 0.0
        if query_text in key_text or key_text in query_text:
            containment = min(len(query_text), len(key_text)) / max(len(query_text), len(key_text))
            if containment > CONTAINMENT_MIN_SCORE:
                score = containment
        overlap = len(query_set & key_set) / max(len(query_set), len(key_set))
        if overlap >= TOKEN_OVERLAP_MIN_SCORE:
            score = max(score, overlap)

        if score > best_score:
            best_score = score
            best_count = count
    return best_count


class MatchStrategy(NamedTuple):
    tag: str
    match: Callable[[SectorQuery, Mapping[str, int]], Optional[int]]


STRATEGIES: Tuple[MatchStrategy, ...] = (
    MatchStrategy("exact", match_exact),
    MatchStrategy("simplified", match_simplified),
    MatchStrategy("apostrophe", match_apostrophe),
    MatchStrategy("trailing_number", match_trailing_number),
    MatchStrategy("code", match_code),
    MatchStrategy("fuzzy", match_fuzzy),
)


def api_housing_units(api_properties: Optional[Mapping[str, Any]]) -> Optional[int]:
    if not api_properties:
        return None
    for key in API_HOUSING_KEYS:
        count = to_housing_count(api_properties.get(key))
        if count:
            return count
    return None


def even_split(commune_housing_units: Any, sector_count: Any) -> int:
    """Commune total spread evenly across its sectors; 0 when either side is unknown."""
    total = to_housing_count(commune_housing_units)
    sectors = to_housing_count(sector_count)
    if not total or not sectors:
        return 0
    return round_half_up(total / sectors)


def resolve_with_strategy(
    index: Mapping[str, int],
    name: Any,
    code: Any = None,
    api_properties: Optional[Mapping[str, Any]] = None,
    commune_housing_units: Any = None,
    sector_count: Any = None,
) -> Tuple[int, str]:
    """Same as resolve(), also returning the tag of the step that produced the count."""
    direct = api_housing_units(api_properties)
    if direct:
        return direct, "api_property"

    if not index:
        split = even_split(commune_housing_units, sector_count)
        return split, ("even_split" if split else "miss")

    query = SectorQuery(
        name=str(name or ""),
        code=str(code).strip() if code not in (None, "") else None,
    )
    for strategy in STRATEGIES:
        count = strategy.match(query, index)
        if count:
            return count, strategy.tag

    logger.debug("housing_lookup_miss", name=query.name, code=query.code)
    return 0, "miss"


def resolve(
    index: Mapping[str, int],
    name: Any,
    code: Any = None,
    api_properties: Optional[Mapping[str, Any]] = None,
    commune_housing_units: Any = None,
    sector_count: Any = None,
) -> int:
    """
    Housing units for one IRIS sector. Never raises: an unresolved sector is 0.

    Order: API property > even split (empty index only) > exact > simplified >
    apostrophe > trailing number > code > fuzzy.
    """
    count, _ = resolve_with_strategy(
        index,
        name,
        code=code,
        api_properties=api_properties,
        commune_housing_units=commune_housing_units,
        sector_count=sector_count,
    )
    return count
