"""JSON-file trade history, the persisted state behind the CLI."""

import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Literal

import pandas as pd

from fxsignal.models import StrategyChoice, TradeSignal

logger = logging.getLogger(__name__)

TradeStatus = Literal["open", "won", "lost"]
TRADE_STATUSES = ("open", "won", "lost")


class HistoryError(RuntimeError):
    """Raised when the history file cannot be read."""


@dataclass
class TradeHistoryEntry:
    id: str
    timestamp: str
    currency_pair: str
    timeframe: str
    signal: TradeSignal
    status: TradeStatus = "open"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "currency_pair": self.currency_pair,
            "timeframe": self.timeframe,
            "signal": self.signal.to_dict(),
            "status": self.status,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TradeHistoryEntry":
        return cls(
            id=data["id"],
            timestamp=data["timestamp"],
            currency_pair=data["currency_pair"],
            timeframe=data["timeframe"],
            signal=TradeSignal.from_dict(data["signal"]),
            status=data.get("status", "open"),
        )


@dataclass(frozen=True)
class HistoryPerformance:
    total: int
    wins: int
    losses: int
    open: int
    win_rate: float  # percent of closed trades


class TradeHistory:
    """Trade history persisted as a JSON list, newest entry first.

    Every mutation rewrites the whole file.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._entries = self._load()

    def _load(self) -> list[TradeHistoryEntry]:
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text() or "[]")
            return [TradeHistoryEntry.from_dict(item) for item in raw]
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
            raise HistoryError(f"Failed to read trade history {self.path}: {exc}") from exc

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = [entry.to_dict() for entry in self._entries]
        self.path.write_text(json.dumps(payload, indent=2))

    def entries(self) -> list[TradeHistoryEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def add(
        self,
        signal: TradeSignal,
        currency_pair: str,
        timeframe: str,
        timestamp: datetime | None = None,
    ) -> TradeHistoryEntry:
        """Record a signal as an open trade."""
        timestamp = timestamp or datetime.now(timezone.utc)
        entry = TradeHistoryEntry(
            id=uuid.uuid4().hex,
            timestamp=timestamp.isoformat(),
            currency_pair=currency_pair,
            timeframe=timeframe,
            signal=signal,
        )
        self._entries.insert(0, entry)
        self._save()
        logger.debug("Recorded %s signal %s", currency_pair, entry.id)
        return entry

    def get(self, entry_id: str) -> TradeHistoryEntry:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        raise KeyError(entry_id)

    def update_status(self, entry_id: str, status: TradeStatus) -> TradeHistoryEntry:
        if status not in TRADE_STATUSES:
            raise ValueError(f"Unknown status {status!r}. Expected one of: {TRADE_STATUSES}")
        entry = self.get(entry_id)
        entry.status = status
        self._save()
        return entry

    def delete(self, entry_id: str) -> None:
        entry = self.get(entry_id)
        self._entries.remove(entry)
        self._save()

    def clear(self) -> None:
        self._entries = []
        self._save()

    def filter(
        self,
        currency_pair: str | None = None,
        strategy: StrategyChoice | str | None = None,
        status: TradeStatus | None = None,
    ) -> list[TradeHistoryEntry]:
        """Entries matching every given criterion; None matches all."""
        if strategy is not None:
            strategy = StrategyChoice.parse(strategy)
        return [
            e for e in self._entries
            if (currency_pair is None or e.currency_pair == currency_pair)
            and (strategy is None or e.signal.strategy is strategy)
            and (status is None or e.status == status)
        ]

    def performance(self) -> HistoryPerformance:
        total = len(self._entries)
        wins = sum(1 for e in self._entries if e.status == "won")
        losses = sum(1 for e in self._entries if e.status == "lost")
        closed = wins + losses
        return HistoryPerformance(
            total=total,
            wins=wins,
            losses=losses,
            open=total - closed,
            win_rate=(wins / closed) * 100.0 if closed > 0 else 0.0,
        )

    def to_dataframe(self) -> pd.DataFrame:
        rows = [
            {
                "timestamp": e.timestamp,
                "currency_pair": e.currency_pair,
                "timeframe": e.timeframe,
                "strategy": e.signal.strategy.value,
                "signal": e.signal.action.value,
                "entry": e.signal.entry,
                "stop_loss": e.signal.stop_loss,
                "take_profit": e.signal.take_profit,
                "lot_size": e.signal.lot_size,
                "status": e.status,
            }
            for e in self._entries
        ]
        return pd.DataFrame(rows, columns=[
            "timestamp", "currency_pair", "timeframe", "strategy", "signal",
            "entry", "stop_loss", "take_profit", "lot_size", "status",
        ])

    def export_csv(self, filepath: str | Path) -> Path:
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)
        self.to_dataframe().to_csv(filepath, index=False)
        return filepath
