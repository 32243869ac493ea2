"""Forex trading-session clock, all hours in UTC."""

from dataclasses import dataclass
from datetime import datetime, timezone

SATURDAY, SUNDAY, FRIDAY = 5, 6, 4  # datetime.weekday()
WEEKLY_CLOSE_HOUR = 21


@dataclass(frozen=True)
class Market:
    name: str
    open_utc: int
    close_utc: int


@dataclass(frozen=True)
class Overlap:
    id: str
    name: str
    start_utc: int
    end_utc: int


MARKETS = (
    Market("Sydney", 22, 6),
    Market("London", 8, 16),
    Market("New York", 13, 21),
    Market("Tokyo", 0, 8),
)

OVERLAPS = {
    "LDN-TKY": Overlap("LDN-TKY", "London/Tokyo", 8, 9),
    "SYD-TKY": Overlap("SYD-TKY", "Sydney/Tokyo", 0, 6),
    "LDN-NYK": Overlap("LDN-NYK", "London/New York", 13, 16),
}

PAIR_OVERLAPS = {
    "EUR/USD": ("LDN-NYK",),
    "GBP/USD": ("LDN-NYK",),
    "USD/CHF": ("LDN-NYK",),
    "USD/JPY": ("LDN-NYK", "LDN-TKY"),
    "AUD/USD": ("SYD-TKY",),
    "NZD/USD": ("SYD-TKY",),
    "USD/CAD": ("LDN-NYK",),
    "EUR/JPY": ("LDN-TKY",),
    "GBP/JPY": ("LDN-TKY",),
}


def _utc(now: datetime | None) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def is_market_open(now: datetime | None = None) -> bool:
    """Open from Sunday 21:00 UTC to Friday 21:00 UTC."""
    now = _utc(now)
    day, hour = now.weekday(), now.hour
    if day == SATURDAY:
        return False
    if day == FRIDAY and hour >= WEEKLY_CLOSE_HOUR:
        return False
    if day == SUNDAY and hour < WEEKLY_CLOSE_HOUR:
        return False
    return True


def market_session_open(market: Market, now: datetime | None = None) -> bool:
    """Whether a regional session is trading; sessions may wrap midnight."""
    now = _utc(now)
    if not is_market_open(now):
        return False
    if market.open_utc < market.close_utc:
        return market.open_utc <= now.hour < market.close_utc
    return now.hour >= market.open_utc or now.hour < market.close_utc


def overlap_active(overlap: Overlap, now: datetime | None = None) -> bool:
    now = _utc(now)
    day, hour = now.weekday(), now.hour
    if day in (SATURDAY, SUNDAY):
        return False
    if day == FRIDAY and hour >= overlap.end_utc:
        return False
    return overlap.start_utc <= hour < overlap.end_utc


def pair_overlaps(currency_pair: str) -> list[Overlap]:
    """Session overlaps with the most liquidity for a pair."""
    return [OVERLAPS[i] for i in PAIR_OVERLAPS.get(currency_pair, ())]
