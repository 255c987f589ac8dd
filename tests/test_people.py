"""Tests for the people lookup client."""

import httpx
import pytest

from timetracker.errors import PeopleLookupError, ValidationError
from timetracker.people import PeopleClient, split_passport

LOOKUP_URL = "http://people.test/info"


def _client(handler) -> PeopleClient:
    return PeopleClient(LOOKUP_URL, transport=httpx.MockTransport(handler))


class TestSplitPassport:
    def test_valid(self):
        assert split_passport("1234 567890") == ("1234", "567890")

    @pytest.mark.parametrize("value", ["1234567890", "1234  567890", "12 34 56", " 1234", ""])
    def test_invalid(self, value):
        with pytest.raises(ValidationError):
            split_passport(value)


class TestPeopleClient:
    """Tests for PeopleClient.get_by_passport."""

    @pytest.mark.asyncio
    async def test_returns_details(self):
        """Serie and number are sent as separate query parameters."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["params"] = dict(request.url.params)
            seen["path"] = request.url.path
            return httpx.Response(200, json={
                "surname": "Ivanov",
                "name": "Ivan",
                "patronymic": "Ivanovich",
                "address": "Moscow, Lenina 5",
            })

        people = await _client(handler).get_by_passport("1234 567890")

        assert seen["params"] == {"passportSerie": "1234", "passportNumber": "567890"}
        assert seen["path"] == "/info"
        assert people.surname == "Ivanov"
        assert people.patronymic == "Ivanovich"
        assert people.address == "Moscow, Lenina 5"

    @pytest.mark.asyncio
    async def test_missing_fields_default_to_empty(self):
        people = await _client(lambda request: httpx.Response(200, json={"surname": "Ivanov"})).get_by_passport(
            "1234 567890"
        )

        assert people.surname == "Ivanov"
        assert people.address == ""

    @pytest.mark.asyncio
    async def test_non_ok_status(self):
        client = _client(lambda request: httpx.Response(500, text="upstream down"))

        with pytest.raises(PeopleLookupError) as exc_info:
            await client.get_by_passport("1234 567890")

        assert "500" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_bad_payload(self):
        client = _client(lambda request: httpx.Response(200, text="not json"))

        with pytest.raises(PeopleLookupError):
            await client.get_by_passport("1234 567890")

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(PeopleLookupError):
            await _client(handler).get_by_passport("1234 567890")

    @pytest.mark.asyncio
    async def test_malformed_passport_skips_request(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("lookup should not be called")

        with pytest.raises(ValidationError):
            await _client(handler).get_by_passport("1234567890")
