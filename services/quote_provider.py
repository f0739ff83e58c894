#!/usr/bin/env python3
import asyncio
from typing import Any, Dict, Optional

import aiohttp

from constants import (
    DEFAULT_QUOTE_TIMEOUT,
    ODOS_QUOTE_URL,
    ODOS_QUOTE_USER_ADDRESS,
    ODOS_SLIPPAGE_LIMIT_PCT,
)
from errors import ProviderError


class OdosQuoteProvider:
    """Requests swap quotes from the Odos smart order router (no API key needed)."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        *,
        chain_id: int,
        url: str = ODOS_QUOTE_URL,
        timeout: float = DEFAULT_QUOTE_TIMEOUT,
        slippage_limit_pct: float = ODOS_SLIPPAGE_LIMIT_PCT,
    ):
        self.session = session
        self.chain_id = chain_id
        self.url = url
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.slippage_limit_pct = slippage_limit_pct

    def build_request(self, base_address: str, quote_address: str, amount_in: int) -> Dict[str, Any]:
        return {
            "chainId": self.chain_id,
            "inputTokens": [{"tokenAddress": base_address, "amount": str(amount_in)}],
            "outputTokens": [{"tokenAddress": quote_address, "proportion": 1}],
            "userAddr": ODOS_QUOTE_USER_ADDRESS,
            "slippageLimitPercent": self.slippage_limit_pct,
            "referralCode": 0,
            "disableRFQs": True,
            "compact": True,
        }

    async def get_quote(self, base_address: str, quote_address: str, amount_in: int) -> int:
        """Returns how many raw quote units ``amount_in`` raw base units would swap into."""
        body = self.build_request(base_address, quote_address, amount_in)
        try:
            async with self.session.post(self.url, json=body, timeout=self.timeout) as response:
                response.raise_for_status()
                data = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ProviderError(f"Odos quote request failed: {e!r}") from e
        except ValueError as e:
            raise ProviderError(f"Odos quote response is not JSON: {e}") from e

        out_amount = self._parse_out_amount(data)
        if out_amount is None:
            raise ProviderError(f"Odos quote missing outAmounts: {data!r}")
        return out_amount

    @staticmethod
    def _parse_out_amount(data: Any) -> Optional[int]:
        if not isinstance(data, dict):
            return None
        out_amounts = data.get('outAmounts')
        if not isinstance(out_amounts, list) or not out_amounts:
            return None
        # Odos returns amounts as decimal strings.
        try:
            value = int(str(out_amounts[0]))
        except (TypeError, ValueError):
            return None
        return value if value >= 0 else None
