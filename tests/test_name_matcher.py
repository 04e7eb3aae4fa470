"""Housing-unit lookup: index construction and every matching strategy."""

import pytest

from distri.services.name_matcher import (
    IrisEntry,
    SectorQuery,
    build_index,
    code_variants,
    match_apostrophe,
    match_code,
    match_trailing_number,
    normalize_name,
    resolve,
    resolve_with_strategy,
)


@pytest.fixture
def lyon_index(dataset):
    return build_index(dataset.iris_entries("Lyon"))


class TestNormalization:
    def test_normalize_name(self):
        assert normalize_name("  L'Île-Barbe  ") == "lilebarbe"
        assert normalize_name("Croix   Rousse\tEst") == "croix rousse est"
        assert normalize_name("Saint-Étienne 3") == "saintetienne 3"
        assert normalize_name(None) == ""

    def test_index_values_are_positive_integers(self, lyon_index):
        assert lyon_index
        assert all(isinstance(v, int) and v > 0 for v in lyon_index.values())
        # 2310.4 in the dataset
        assert lyon_index["croixrousse gros caillou"] == 2310

    def test_rows_without_count_are_skipped(self):
        index = build_index(
            [
                IrisEntry(name="Cusset", housing_units=float("nan")),
                IrisEntry(name="Vide", housing_units=0),
                IrisEntry(name="Texte", housing_units="1 250"),
            ]
        )
        assert "cusset" not in index
        assert "vide" not in index
        assert index["texte"] == 1250

    def test_last_write_wins(self):
        index = build_index([IrisEntry(name="Centre", housing_units=100), IrisEntry(name="centre", housing_units=200)])
        assert index["centre"] == 200

    def test_code_keys(self):
        index = build_index([IrisEntry(name="Centre", housing_units=100, code="ABC123456")])
        assert index["ABC123456"] == 100
        assert index["abc123456"] == 100


class TestResolve:
    def test_case_insensitive_exact_match(self, lyon_index):
        """Dataset 'Chapelle 7' (1200) found from the API name 'chapelle 7'."""
        count, tag = resolve_with_strategy(lyon_index, "chapelle 7")
        assert count == 1200
        assert tag == "exact"

    def test_deterministic(self, lyon_index, dataset):
        first = resolve(lyon_index, "Gros Caillou", code="999")
        second = resolve(build_index(dataset.iris_entries("Lyon")), "Gros Caillou", code="999")
        assert first == second == 2310

    @pytest.mark.parametrize("name", [None, "", "   ", "!!!", 12345, "zzzz qqqq", "’’"])
    def test_never_raises(self, lyon_index, name):
        count = resolve(lyon_index, name, code=name)
        assert isinstance(count, int)
        assert count >= 0

    def test_api_property_wins(self, lyon_index):
        assert resolve(lyon_index, "Chapelle 7", api_properties={"logements": 777}) == 777
        assert resolve(lyon_index, "Chapelle 7", api_properties={"nb_logements": "640"}) == 640

    def test_non_positive_api_property_ignored(self, lyon_index):
        assert resolve(lyon_index, "Chapelle 7", api_properties={"logements": 0}) == 1200

    def test_even_split_when_index_empty(self):
        count, tag = resolve_with_strategy({}, "Centre", commune_housing_units=10000, sector_count=3)
        assert count == 3333
        assert tag == "even_split"

    def test_even_split_needs_both_values(self):
        assert resolve({}, "Centre", commune_housing_units=10000) == 0
        assert resolve({}, "Centre", sector_count=4) == 0

    def test_even_split_only_for_empty_index(self, lyon_index):
        assert resolve(lyon_index, "Nulle Part", commune_housing_units=10000, sector_count=2) == 0

    def test_curly_apostrophe(self, lyon_index):
        assert resolve(lyon_index, "L’Île Barbe") == 845

    def test_code_lookup(self, lyon_index):
        count, tag = resolve_with_strategy(lyon_index, "Inconnu", code="693870701")
        assert count == 1200
        assert tag == "code"

    def test_fuzzy_token_overlap(self, lyon_index):
        count, tag = resolve_with_strategy(lyon_index, "Gros Caillou")
        assert count == 2310
        assert tag == "fuzzy"

    def test_fuzzy_containment(self, lyon_index):
        assert resolve(lyon_index, "Bel") == 3120

    def test_fuzzy_below_threshold(self, lyon_index):
        assert resolve(lyon_index, "Be") == 0

    def test_fuzzy_tie_keeps_first_key(self):
        index = {"alpha beta": 10, "beta alpha": 20}
        assert resolve(index, "Alpha") == 10

    def test_miss(self, lyon_index):
        count, tag = resolve_with_strategy(lyon_index, "Xyz Inconnu")
        assert count == 0
        assert tag == "miss"


class TestStrategies:
    def test_apostrophe_replaced_by_space(self):
        index = {"l ile barbe": 845}
        assert match_apostrophe(SectorQuery("L'Île Barbe"), index) == 845
        assert match_apostrophe(SectorQuery("Ile Barbe"), index) is None

    def test_trailing_number_same_number(self):
        index = {"chapelle 7": 1200, "chapelle 8": 950}
        assert match_trailing_number(SectorQuery("Chapelle 07"), index) == 1200

    def test_trailing_number_unnumbered_base(self):
        assert match_trailing_number(SectorQuery("Chapelle 12"), {"chapelle": 500}) == 500

    def test_trailing_number_other_number_rejected(self):
        assert match_trailing_number(SectorQuery("Chapelle 7"), {"chapelle 8": 950}) is None

    def test_trailing_number_requires_number(self):
        assert match_trailing_number(SectorQuery("Chapelle"), {"chapelle": 500}) is None

    def test_code_variants(self):
        variants = code_variants("12345678")
        assert "012345678" in variants
        assert "5678" in variants
        assert "693870701" in code_variants("693870701XX")
        assert code_variants(None) == []

    def test_code_padding(self):
        index = build_index([IrisEntry(name="A", housing_units=10, code="012345678")])
        assert match_code(SectorQuery("?", "12345678"), index) == 10
