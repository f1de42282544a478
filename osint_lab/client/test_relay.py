import asyncio
import json

import httpx

from osint_lab.client.geolocation import lookup_geo
from osint_lab.client.relay import TerminalRelay

VISITOR_ID = "11111111-1111-1111-1111-111111111111"


def run_with(handler, coro_factory):
    async def main():
        async with httpx.AsyncClient(base_url="http://terminal.test", transport=httpx.MockTransport(handler)) as client:
            return await coro_factory(client)

    return asyncio.run(main())


def test_report_session_payload():
    seen = []

    def handler(request):
        seen.append((request.url.path, json.loads(request.content)))
        return httpx.Response(200, json={"success": True})

    result = run_with(handler, lambda c: TerminalRelay(c, VISITOR_ID).report_session(
        "abc", {"city": "Berlin", "country": "Germany"}, "test"))
    assert result == {"success": True}
    assert seen == [("/session", {
        "visitor_id": VISITOR_ID,
        "fpHash": "abc",
        "geo": {"city": "Berlin", "country": "Germany"},
        "userAgent": "test",
    })]


def test_query_returns_answer():
    def handler(request):
        body = json.loads(request.content)
        assert request.url.path == "/query"
        assert body == {"visitor_id": VISITOR_ID, "prompt": "what is OSINT"}
        return httpx.Response(200, json={"answer": "Open-source intelligence."})

    answer = run_with(handler, lambda c: TerminalRelay(c, VISITOR_ID).query("what is OSINT"))
    assert answer == "Open-source intelligence."


def test_query_is_attempted_once():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(500, json={"error": "Internal server error during query."})

    async def call(client):
        try:
            await TerminalRelay(client, VISITOR_ID).query("hi")
        except httpx.HTTPStatusError as e:
            return e.response.status_code

    assert run_with(handler, call) == 500
    assert len(calls) == 1


def test_lookup_geo_trims_payload():
    def handler(request):
        return httpx.Response(200, json={
            "status": "success", "query": "198.51.100.4", "city": "Berlin", "country": "Germany",
            "lat": 52.5, "lon": 13.4, "isp": "Example ISP", "zip": None,
        })

    geo = run_with(handler, lambda c: lookup_geo(c, "http://geo.test/json"))
    assert geo == {"query": "198.51.100.4", "city": "Berlin", "country": "Germany", "lat": 52.5, "lon": 13.4}


def test_lookup_geo_failure_returns_empty():
    def handler(request):
        raise httpx.ConnectError("no route to host")

    assert run_with(handler, lambda c: lookup_geo(c, "http://geo.test/json")) == {}


def test_lookup_geo_refused():
    def handler(request):
        return httpx.Response(200, json={"status": "fail", "message": "reserved range"})

    assert run_with(handler, lambda c: lookup_geo(c, "http://geo.test/json")) == {}
