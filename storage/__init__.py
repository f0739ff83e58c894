"""Storage package providing persistence for alert state."""

from .state_store import AlertStateStore

__all__ = ["AlertStateStore"]
