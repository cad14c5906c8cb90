"""Unit tests for ProgramSearchClient."""
import sys
sys.path.insert(0, 'backend')

import asyncio

import httpx
import pytest
from services.privacy_resolver import Channel
from services.search_client import ProgramSearchClient

HOST = "https://search.example.org"


def hit(program_id, name, **fields):
    return {"document": dict(id=program_id, name=name, **fields)}


def run_search(handler, query="food assistance", category="food", **kwargs):
    async def run():
        channel = Channel("standard", httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        client = ProgramSearchClient(host=HOST, api_key="search-key", timeout=kwargs.pop("timeout", 5.0))
        return await client.search(query, category, channel, **kwargs)

    return asyncio.run(run())


class TestSearchRequest:
    """Tests for the request sent to the search index."""

    def test_request_shape(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"hits": []})

        run_search(handler, query="food bank", category="food")

        assert len(requests) == 1
        request = requests[0]
        assert request.url.path == "/collections/programs/documents/search"
        assert request.headers["X-TYPESENSE-API-KEY"] == "search-key"
        params = request.url.params
        assert params["q"] == "food bank"
        assert params["query_by"] == "name,keywords,description"
        assert params["per_page"] == "5"
        assert params["num_typos"] == "2"
        assert params["filter_by"] == "category:=Food"

    @pytest.mark.parametrize("category,facet", [
        ("pets", "Pet Resources"),
        ("seniors", "Community Services"),
        ("veterans", "Community Services"),
        ("disability", "Health"),
        ("transit", "Transportation"),
    ])
    def test_category_facets(self, category, facet):
        assert ProgramSearchClient.facet_for(category) == facet

    @pytest.mark.parametrize("category", ["general", "crisis", None, "unknown"])
    def test_no_filter(self, category):
        client = ProgramSearchClient(host=HOST, api_key="")
        assert "filter_by" not in client.build_params("food", category, 5)

    def test_empty_query_makes_no_request(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"hits": []})

        assert run_search(handler, query="   ") == []
        assert requests == []


class TestSearchResults:
    """Tests for result mapping and failure handling."""

    def test_maps_documents(self):
        def handler(request):
            return httpx.Response(200, json={"hits": [
                hit("alameda-food-bank", "Alameda County Food Bank", category="Food",
                    description="Free groceries", phone="510-635-3663",
                    link="https://www.accfb.org", area=["Alameda County"]),
                hit("sf-marin-food-bank", "SF-Marin Food Bank", area="San Francisco"),
            ]})

        programs = run_search(handler)

        assert [p.name for p in programs] == ["Alameda County Food Bank", "SF-Marin Food Bank"]
        first = programs[0]
        assert first.id == "alameda-food-bank"
        assert first.category == "Food"
        assert first.website == "https://www.accfb.org"
        assert first.areas == ["Alameda County"]
        assert programs[1].areas == ["San Francisco"]

    def test_skips_malformed_hits(self):
        def handler(request):
            return httpx.Response(200, json={"hits": [
                {"document": {"name": "No id"}},
                {"nothing": True},
                hit("ok", "Valid Program"),
            ]})

        programs = run_search(handler)
        assert [p.id for p in programs] == ["ok"]

    def test_limit(self):
        def handler(request):
            return httpx.Response(200, json={"hits": [hit(str(i), f"Program {i}") for i in range(8)]})

        assert len(run_search(handler, limit=3)) == 3

    @pytest.mark.parametrize("response", [
        httpx.Response(500, text="error"),
        httpx.Response(200, content=b"not json"),
        httpx.Response(200, json=["unexpected"]),
    ])
    def test_bad_responses_return_empty(self, response):
        assert run_search(lambda request: response) == []

    def test_network_error_returns_empty(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        assert run_search(handler) == []

    def test_timeout_returns_empty(self):
        async def handler(request):
            await asyncio.sleep(1)
            return httpx.Response(200, json={"hits": []})

        assert run_search(handler, timeout=0.01) == []
