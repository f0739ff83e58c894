#!/usr/bin/env python3
import asyncio
import itertools
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import aiohttp
from aiohttp import ClientSession

from constants import DEFAULT_RPC_TIMEOUT
from errors import ProviderError


@dataclass(frozen=True)
class PairReserves:
    """Raw reserves of a V2-style pool, in contract token order."""
    token0: str
    token1: str
    reserve0: int
    reserve1: int
    decimals0: int
    decimals1: int
    block_timestamp_last: int = 0


class UniswapV2ReserveProvider:
    """Reads token order, reserves and decimals of a V2 pair over raw JSON-RPC."""

    _TOKEN0_SIG = "0x0dfe1681"
    _TOKEN1_SIG = "0xd21220a7"
    _GET_RESERVES_SIG = "0x0902f1ac"
    _DECIMALS_SIG = "0x313ce567"

    def __init__(
        self,
        session: ClientSession,
        *,
        rpc_url: str,
        timeout: float = DEFAULT_RPC_TIMEOUT,
    ) -> None:
        self._session = session
        self._rpc_url = rpc_url
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._decimals_cache: Dict[str, int] = {}
        self._tokens_cache: Dict[str, Tuple[str, str]] = {}
        self._request_ids = itertools.count(1)

    async def get_reserves(self, pair_address: str) -> PairReserves:
        """Fetches the current reserves of ``pair_address``; raises ProviderError on any failure."""
        pair_address = pair_address.lower()
        try:
            token0, token1 = await self._get_pair_tokens(pair_address)
            reserve0, reserve1, timestamp_last = await self._get_reserves(pair_address)
            decimals0 = await self._get_decimals(token0)
            decimals1 = await self._get_decimals(token1)
        except ProviderError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise ProviderError(f"RPC request for pair {pair_address} failed: {exc!r}") from exc
        except (ValueError, TypeError) as exc:
            raise ProviderError(f"Malformed RPC result for pair {pair_address}: {exc}") from exc

        return PairReserves(
            token0=token0,
            token1=token1,
            reserve0=reserve0,
            reserve1=reserve1,
            decimals0=decimals0,
            decimals1=decimals1,
            block_timestamp_last=timestamp_last,
        )

    async def _get_pair_tokens(self, pair_address: str) -> Tuple[str, str]:
        cached = self._tokens_cache.get(pair_address)
        if cached:
            return cached
        token0 = self._decode_address(await self._eth_call(pair_address, self._TOKEN0_SIG))
        token1 = self._decode_address(await self._eth_call(pair_address, self._TOKEN1_SIG))
        if token0 is None or token1 is None:
            raise ProviderError(f"Could not resolve token0/token1 for pair {pair_address}")
        self._tokens_cache[pair_address] = (token0, token1)
        return token0, token1

    async def _get_reserves(self, pair_address: str) -> Tuple[int, int, int]:
        result = await self._eth_call(pair_address, self._GET_RESERVES_SIG)
        if not result or len(result) < 194:
            raise ProviderError(f"getReserves returned an empty result for {pair_address}")
        reserve0 = int(result[2:66], 16)
        reserve1 = int(result[66:130], 16)
        timestamp_last = int(result[130:194], 16)
        return reserve0, reserve1, timestamp_last

    async def _get_decimals(self, token_address: str) -> int:
        cached = self._decimals_cache.get(token_address)
        if cached is not None:
            return cached
        result = await self._eth_call(token_address, self._DECIMALS_SIG)
        if not result or result == "0x":
            raise ProviderError(f"decimals() returned an empty result for {token_address}")
        decimals = int(result, 16)
        self._decimals_cache[token_address] = decimals
        return decimals

    async def _eth_call(self, to: str, data: str, block: str = "latest") -> Optional[str]:
        call_params = {"to": to, "data": data}
        return await self._rpc_call("eth_call", [call_params, block])

    async def _rpc_call(self, method: str, params: list) -> Optional[str]:
        request_id = next(self._request_ids)
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": request_id,
        }
        async with self._session.post(self._rpc_url, json=payload, timeout=self._timeout) as response:
            response.raise_for_status()
            data = await response.json()
        if not isinstance(data, dict):
            raise ProviderError(f"Unexpected JSON-RPC response for {method}: {data!r}")
        if 'error' in data:
            raise ProviderError(f"JSON-RPC error for {method}: {data['error']}")
        return data.get('result')

    @staticmethod
    def _decode_address(value: Optional[str]) -> Optional[str]:
        if not value or len(value) < 66:
            return None
        return '0x' + value[-40:].lower()
