"""OpenDataSoft client against an httpx mock transport."""

import httpx
import pytest

from distri.integrations.opendatasoft import (
    GeocodingError,
    OpenDataSoftClient,
    paris_arrondissement_code,
    to_feature,
)

POLYGON = {
    "type": "Feature",
    "geometry": {
        "type": "Polygon",
        "coordinates": [[[4.83, 45.76], [4.84, 45.76], [4.84, 45.77], [4.83, 45.77], [4.83, 45.76]]],
    },
}


def record(code, name="Secteur"):
    return {"iris_code": [code], "iris_name": [name], "geo_shape": POLYGON}


def paged_transport(total, calls):
    records = [record(f"6938{i:05d}", f"Secteur {i}") for i in range(total)]

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(dict(request.url.params))
        offset = int(request.url.params.get("offset", 0))
        limit = int(request.url.params["limit"])
        return httpx.Response(200, json={"results": records[offset : offset + limit]})

    return httpx.MockTransport(handler)


class TestHelpers:
    def test_paris_arrondissement_code(self):
        assert paris_arrondissement_code("Paris 10e Arrondissement") == "75110"
        assert paris_arrondissement_code("Paris 1er Arrondissement") == "75101"
        assert paris_arrondissement_code("Lyon") is None

    def test_to_feature_unwraps_lists(self):
        feature = to_feature(record("693870701", "Chapelle 7"))
        props = feature["properties"]
        assert props["code"] == "693870701"
        assert props["name"] == "Chapelle 7"
        assert 45.76 <= props["centroid"]["lat"] <= 45.77

    def test_to_feature_keeps_api_housing_units(self):
        rec = record("693870701")
        rec["logements"] = 812
        assert to_feature(rec)["properties"]["logements"] == 812

    def test_to_feature_skips_unusable_records(self):
        assert to_feature(record("693899999", "Commune non irisée")) is None
        assert to_feature({"iris_name": "Sans code", "geo_shape": POLYGON}) is None
        assert to_feature({"iris_code": "1", "geo_shape": {"type": "Feature", "geometry": None}}) is None
        broken = {"iris_code": "1", "geo_shape": {"type": "Polygon", "coordinates": [[[0, 0]]]}}
        assert to_feature(broken) is None


class TestClient:
    @pytest.mark.asyncio
    async def test_pagination_until_short_page(self):
        calls = []
        client = OpenDataSoftClient(base_url="https://ods.test", page_size=2, max_offset=100, transport=paged_transport(5, calls))
        records = await client.fetch_iris_records("69123")
        assert len(records) == 5
        assert [c["offset"] for c in calls] == ["0", "2", "4"]
        assert calls[0]["where"] == 'com_code = "69123"'

    @pytest.mark.asyncio
    async def test_pagination_safety_cap(self):
        calls = []
        client = OpenDataSoftClient(base_url="https://ods.test", page_size=2, max_offset=4, transport=paged_transport(50, calls))
        records = await client.fetch_iris_records("69123")
        assert len(records) == 4
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_http_error(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(500, json={}))
        client = OpenDataSoftClient(base_url="https://ods.test", transport=transport)
        with pytest.raises(GeocodingError):
            await client.fetch_iris_records("69123")

    @pytest.mark.asyncio
    async def test_non_json_reply(self):
        """A 200 maintenance page is an API failure, not a crash."""
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>maintenance</html>"))
        client = OpenDataSoftClient(base_url="https://ods.test", transport=transport)
        with pytest.raises(GeocodingError):
            await client.fetch_iris_records("69123")
        with pytest.raises(GeocodingError):
            await client.find_commune("Lyon")

    @pytest.mark.asyncio
    async def test_unexpected_payload_shape(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=["not", "an", "object"]))
        client = OpenDataSoftClient(base_url="https://ods.test", transport=transport)
        with pytest.raises(GeocodingError):
            await client.fetch_iris_records("69123")

    @pytest.mark.asyncio
    async def test_find_commune(self):
        def handler(request):
            assert request.url.params["where"] == 'com_name like "Lyon"'
            return httpx.Response(200, json={"results": [{"com_code": ["69123"], "com_name": ["Lyon"]}]})

        client = OpenDataSoftClient(base_url="https://ods.test", transport=httpx.MockTransport(handler))
        commune = await client.find_commune("Lyon")
        assert commune.code == "69123"
        assert commune.name == "Lyon"

    @pytest.mark.asyncio
    async def test_find_commune_unknown(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"results": []}))
        client = OpenDataSoftClient(base_url="https://ods.test", transport=transport)
        assert await client.find_commune("Nulle-Part") is None

    @pytest.mark.asyncio
    async def test_features_skip_bad_records(self):
        records = [record("693870701", "Chapelle 7"), record("693899999", "Commune non irisée")]
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"results": records}))
        client = OpenDataSoftClient(base_url="https://ods.test", page_size=100, transport=transport)
        features = await client.fetch_iris_features("69123")
        assert [f["properties"]["code"] for f in features] == ["693870701"]
