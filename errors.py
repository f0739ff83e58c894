#!/usr/bin/env python3
"""Error taxonomy shared by the price pipeline, the collaborators and the CLI."""


class ArbitrageBotError(Exception):
    """Base class for every error raised by the bot."""


class ConfigError(ArbitrageBotError):
    """Required configuration is missing or invalid. Fatal at startup."""


class ProviderError(ArbitrageBotError):
    """A venue could not be queried (network, HTTP, JSON-RPC or payload failure)."""


class PriceError(ArbitrageBotError):
    """Raw venue amounts could not be turned into a usable price."""


class ZeroReserve(PriceError):
    """One side of a reserve pair or quote normalised to zero."""


class TokenMismatch(PriceError):
    """Venue-reported token addresses match neither base/quote assignment."""

    def __init__(self, token0: str, token1: str) -> None:
        super().__init__(f"Pair tokens mismatch. token0={token0}, token1={token1}")
        self.token0 = token0
        self.token1 = token1


class InvalidPrice(PriceError):
    """A price or profit value was zero, negative or non-finite."""


class NotifyFailure(ArbitrageBotError):
    """The notifier did not confirm delivery."""
