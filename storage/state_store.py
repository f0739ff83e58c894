"""JSON-file persistence for the last alert sent per monitored pair."""
from __future__ import annotations

import asyncio
import json
import logging
import math
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Optional

from analysis.models import AlertState
from constants import DEFAULT_STATE_PATH, NEVER_SENT_PROFIT_PCT

logger = logging.getLogger(__name__)

# Older state files used these names for the profit and price fields.
_LEGACY_PROFIT_FIELD = "lastSentProfit"
_LEGACY_BUY_FIELD = "lastSushi"
_LEGACY_SELL_FIELD = "lastOdos"


def _empty_document() -> dict[str, Any]:
    return {"pairs": {}, "meta": {}}


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return value


def _state_from_record(record: Any) -> Optional[AlertState]:
    if not isinstance(record, dict):
        return None
    last_sent_at = record.get("lastSentAt", 0)
    profit = record.get("lastSentProfitPct", record.get(_LEGACY_PROFIT_FIELD, NEVER_SENT_PROFIT_PCT))
    if _as_number(last_sent_at) is None or _as_number(profit) is None:
        return None
    # Older files stored venue prices; those only alerted when Odos was above Sushi.
    return AlertState(
        last_sent_at=last_sent_at,
        last_sent_profit_pct=float(profit),
        last_buy_price=_as_number(record.get("lastBuyPrice", record.get(_LEGACY_BUY_FIELD))),
        last_sell_price=_as_number(record.get("lastSellPrice", record.get(_LEGACY_SELL_FIELD))),
    )


def _record_from_state(state: AlertState) -> dict[str, Any]:
    record: dict[str, Any] = {
        "lastSentAt": state.last_sent_at,
        "lastSentProfitPct": state.last_sent_profit_pct,
    }
    if state.last_buy_price is not None:
        record["lastBuyPrice"] = state.last_buy_price
    if state.last_sell_price is not None:
        record["lastSellPrice"] = state.last_sell_price
    return record


class AlertStateStore:
    """Reads and atomically rewrites a small ``state.json`` keyed by pair key.

    Missing or corrupt files are treated as "nothing sent yet". Writes go to a
    temporary file that is fsynced and renamed over the target, so a crash
    mid-write leaves the previous document intact.
    """

    def __init__(self, path: Path | str = Path(DEFAULT_STATE_PATH)) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    # --- Async wrappers -------------------------------------------------

    async def aload(self, key: str) -> AlertState:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.load, key)

    async def asave(self, key: str, state: AlertState) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self.save, key, state)

    # --- Sync API -------------------------------------------------------

    def load(self, key: str) -> AlertState:
        with self._lock:
            document = self._read_document()
        record = document["pairs"].get(key)
        if record is None:
            return AlertState()
        state = _state_from_record(record)
        if state is None:
            logger.warning("Ignoring malformed alert state for %s in %s", key, self.path)
            return AlertState()
        return state

    def load_all(self) -> dict[str, AlertState]:
        with self._lock:
            document = self._read_document()
        states: dict[str, AlertState] = {}
        for key, record in document["pairs"].items():
            state = _state_from_record(record)
            if state is not None:
                states[key] = state
        return states

    def save(self, key: str, state: AlertState) -> None:
        with self._lock:
            document = self._read_document()
            document["pairs"][key] = _record_from_state(state)
            self._write_document(document)

    def load_meta(self, name: str) -> Any:
        with self._lock:
            return self._read_document()["meta"].get(name)

    def save_meta(self, name: str, value: Any) -> None:
        with self._lock:
            document = self._read_document()
            document["meta"][name] = value
            self._write_document(document)

    # --- File IO --------------------------------------------------------

    def _read_document(self) -> dict[str, Any]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return _empty_document()
        except OSError as exc:
            logger.warning("Could not read state file %s: %s", self.path, exc)
            return _empty_document()
        except UnicodeDecodeError as exc:
            logger.warning("State file %s is not valid UTF-8 (%s); starting fresh", self.path, exc)
            return _empty_document()

        try:
            document = json.loads(raw)
        except ValueError as exc:
            logger.warning("State file %s is not valid JSON (%s); starting fresh", self.path, exc)
            return _empty_document()

        if not isinstance(document, dict):
            logger.warning("State file %s has unexpected root %s; starting fresh", self.path, type(document).__name__)
            return _empty_document()

        pairs = document.get("pairs")
        meta = document.get("meta")
        document["pairs"] = pairs if isinstance(pairs, dict) else {}
        document["meta"] = meta if isinstance(meta, dict) else {}
        return document

    def _write_document(self, document: dict[str, Any]) -> None:
        directory = self.path.parent
        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(document, handle, indent=2, sort_keys=True)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise
