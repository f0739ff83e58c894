import asyncio

import aiohttp
import pytest

from errors import ProviderError
from services.quote_provider import OdosQuoteProvider

LINK = '0x53e0bca35ec356bd5dddfebbd1fc0fd03fabad39'
USDC = '0x2791bca1f2de4661ed88a30c99a7a9449aa84174'


class FakeResponse:
    def __init__(self, payload, status=200):
        self._payload = payload
        self.status = status

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    def raise_for_status(self):
        if self.status >= 400:
            raise aiohttp.ClientError(f"HTTP {self.status}")

    async def json(self):
        return self._payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self._response = response
        self._error = error
        self.calls = []

    def post(self, url, json, timeout):
        self.calls.append((url, json))
        if self._error:
            raise self._error
        return self._response


@pytest.mark.asyncio
async def test_get_quote_returns_out_amount():
    session = FakeSession(FakeResponse({'outAmounts': ['14123456'], 'inAmounts': ['1000000000000000000']}))
    provider = OdosQuoteProvider(session, chain_id=137)

    amount_out = await provider.get_quote(LINK, USDC, 10 ** 18)

    assert amount_out == 14_123_456
    url, body = session.calls[0]
    assert url == 'https://api.odos.xyz/sor/quote/v2'
    assert body['chainId'] == 137
    assert body['inputTokens'] == [{'tokenAddress': LINK, 'amount': '1000000000000000000'}]
    assert body['outputTokens'] == [{'tokenAddress': USDC, 'proportion': 1}]
    assert body['disableRFQs'] is True


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [{}, {'outAmounts': []}, {'outAmounts': ['abc']}, ['unexpected']])
async def test_missing_out_amounts_raise(payload):
    provider = OdosQuoteProvider(FakeSession(FakeResponse(payload)), chain_id=137)
    with pytest.raises(ProviderError, match='outAmounts'):
        await provider.get_quote(LINK, USDC, 10 ** 18)


@pytest.mark.asyncio
async def test_http_error_raises_provider_error():
    provider = OdosQuoteProvider(FakeSession(FakeResponse({}, status=500)), chain_id=137)
    with pytest.raises(ProviderError):
        await provider.get_quote(LINK, USDC, 10 ** 18)


@pytest.mark.asyncio
async def test_timeout_raises_provider_error():
    provider = OdosQuoteProvider(FakeSession(error=asyncio.TimeoutError()), chain_id=137)
    with pytest.raises(ProviderError):
        await provider.get_quote(LINK, USDC, 10 ** 18)
