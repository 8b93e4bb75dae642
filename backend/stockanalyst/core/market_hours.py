"""
Market Hours Utility

Handles US/Eastern timezone and regular trading session boundaries.

The session window is used to decide whether a stored analysis is still
fresh: an analysis created inside the current window is reused, anything
older triggers a new run. Weekends and exchange holidays are NOT
special-cased; a Saturday afternoon is treated like any weekday evening.
"""

from dataclasses import dataclass
from datetime import datetime, date, time, timedelta
from enum import Enum
from typing import Optional
import pytz

ET = pytz.timezone("America/New_York")
UTC = pytz.utc

# Regular session (ET)
MARKET_OPEN = time(9, 30)
MARKET_CLOSE = time(16, 0)


class PeriodType(str, Enum):
    TRADING = "trading"
    NON_TRADING = "non-trading"


@dataclass(frozen=True)
class TradingPeriodInfo:
    """Boundaries of the trading or non-trading period containing an instant."""

    is_currently_trading_hours: bool
    current_period_type: PeriodType
    period_start_et: datetime
    period_end_et: datetime
    period_start_utc: datetime
    period_end_utc: datetime

    def to_dict(self) -> dict:
        return {
            "is_currently_trading_hours": self.is_currently_trading_hours,
            "current_period_type": self.current_period_type.value,
            "period_start_et": self.period_start_et.isoformat(),
            "period_end_et": self.period_end_et.isoformat(),
            "period_start_utc": self.period_start_utc.isoformat(),
            "period_end_utc": self.period_end_utc.isoformat(),
        }


def get_et_now() -> datetime:
    """Get current time in US/Eastern."""
    return datetime.now(ET)


def to_et(timestamp: datetime) -> datetime:
    """Convert a timestamp to US/Eastern. Naive values are taken as UTC."""
    if timestamp.tzinfo is None:
        timestamp = UTC.localize(timestamp)
    return timestamp.astimezone(ET)


def _et_at(day: date, at: time) -> datetime:
    """Localize a wall-clock time on a given ET date (DST aware)."""
    return ET.localize(datetime.combine(day, at))


def get_trading_period_info(timestamp: Optional[datetime] = None) -> TradingPeriodInfo:
    """
    Get the trading period that contains `timestamp`.

    - 09:30 <= t < 16:00: trading, [today 09:30, today 16:00)
    - t < 09:30:          non-trading, [yesterday 16:00, today 09:30)
    - t >= 16:00:         non-trading, [today 16:00, tomorrow 09:30)
    """
    if timestamp is None:
        timestamp = get_et_now()

    local = to_et(timestamp)
    today = local.date()
    clock = local.time()

    is_trading = MARKET_OPEN <= clock < MARKET_CLOSE

    if is_trading:
        start_et = _et_at(today, MARKET_OPEN)
        end_et = _et_at(today, MARKET_CLOSE)
    elif clock < MARKET_OPEN:
        start_et = _et_at(today - timedelta(days=1), MARKET_CLOSE)
        end_et = _et_at(today, MARKET_OPEN)
    else:
        start_et = _et_at(today, MARKET_CLOSE)
        end_et = _et_at(today + timedelta(days=1), MARKET_OPEN)

    return TradingPeriodInfo(
        is_currently_trading_hours=is_trading,
        current_period_type=PeriodType.TRADING if is_trading else PeriodType.NON_TRADING,
        period_start_et=start_et,
        period_end_et=end_et,
        period_start_utc=start_et.astimezone(UTC),
        period_end_utc=end_et.astimezone(UTC),
    )


def is_in_same_trading_period(first: datetime, second: datetime) -> bool:
    """Check if two timestamps fall within the same trading period."""
    a = get_trading_period_info(first)
    b = get_trading_period_info(second)
    return a.period_start_utc == b.period_start_utc and a.period_end_utc == b.period_end_utc


def _clock_label(dt: datetime) -> str:
    """9:30 AM style label."""
    return dt.strftime("%I:%M %p").lstrip("0")


def describe_trading_period(timestamp: Optional[datetime] = None) -> str:
    """Get a human-readable description of the current trading period."""
    info = get_trading_period_info(timestamp)
    start = _clock_label(info.period_start_et)
    end = _clock_label(info.period_end_et)

    if info.is_currently_trading_hours:
        return f"Currently in trading hours ({start} - {end} ET)"
    return f"Currently in non-trading hours ({start} ET - {end} ET)"


def get_market_status(dt: Optional[datetime] = None) -> dict:
    """Get comprehensive market status (no weekend or holiday calendar)."""
    now = to_et(dt) if dt is not None else get_et_now()
    info = get_trading_period_info(now)

    status = {
        "is_open": info.is_currently_trading_hours,
        "current_time_et": now.strftime("%H:%M:%S"),
        "current_date": now.date().isoformat(),
        "description": describe_trading_period(now),
        **info.to_dict(),
    }

    if not info.is_currently_trading_hours:
        status["next_open"] = info.period_end_et.isoformat()

    return status
