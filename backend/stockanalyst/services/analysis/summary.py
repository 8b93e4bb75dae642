"""
Display helpers for saved analyses.

Used by the history listing to show a short preview, a type label and a
bullish/bearish/neutral badge without re-running any model.
"""

import re
from datetime import datetime
from typing import Optional

from stockanalyst.core.market_hours import get_et_now, to_et
from stockanalyst.schemas.analysis import OverallTrend

PREVIEW_LENGTH = 150

_HEADING_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"^Long-Term Trend",
        r"^Mid-Term Trend",
        r"^Short-Term Trend",
        r"^Weekly",
        r"^Daily",
        r"^30-Minute",
        r"^\d+\.\s*Long-Term",
        r"^\d+\.\s*Mid-Term",
        r"^\d+\.\s*Short-Term",
    )
]

TYPE_LABELS = {
    "historical": "Historical Analysis",
    "support_resistance": "Support & Resistance",
    "combined": "Combined Analysis",
    "trend_and_sr": "Trend & Support/Resistance",
}

BULLISH_KEYWORDS = [
    "bullish", "uptrend", "upward trend", "rising trend", "positive momentum",
    "strong upside", "buy signal", "long position", "upward momentum",
    "bullish bias", "upward direction", "positive outlook", "strong rally",
    "bullish breakout", "upward trajectory", "buying opportunity",
]

BEARISH_KEYWORDS = [
    "bearish", "downtrend", "downward trend", "declining trend", "negative momentum",
    "strong downside", "sell signal", "short position", "downward momentum",
    "bearish bias", "downward direction", "negative outlook", "strong decline",
    "bearish breakdown", "downward trajectory", "selling pressure",
]

NEUTRAL_KEYWORDS = [
    "sideways", "consolidation", "range-bound", "neutral", "mixed signals",
    "uncertain direction", "choppy", "indecisive", "flat trend",
    "no clear direction", "balanced", "wait and see",
]

# Extra weight for an explicit "overall trend: ..." statement
EXPLICIT_TREND_BONUS = 3
_EXPLICIT_TREND = re.compile(r"(?:trend analysis|overall trend|market trend)[:\s]*([^.]*)")


def _is_heading(paragraph: str) -> bool:
    trimmed = paragraph.strip()
    if trimmed.startswith("#"):
        return True
    return len(trimmed) < 100 and any(p.search(trimmed) for p in _HEADING_PATTERNS)


def _strip_markdown(text: str) -> str:
    text = re.sub(r"\*\*(.*?)\*\*", r"\1", text)
    text = re.sub(r"\*(.*?)\*", r"\1", text)
    text = re.sub(r"^#+\s*", "", text)
    return text.strip()


def _truncate(text: str) -> str:
    return text[:PREVIEW_LENGTH] + "..." if len(text) > PREVIEW_LENGTH else text


def get_analysis_preview(text: str) -> str:
    """
    Short plain-text preview of a report.

    Prefers the 2nd, 4th or 6th paragraph of the trend section (the part
    before the first `---` separator) when it is real content rather than a
    heading. Otherwise falls back to the first line that mentions a trend or
    is reasonably long.
    """
    trend_section = re.split(r"\n\n---", text, maxsplit=1)[0]

    if len(trend_section) > 100:
        paragraphs = [p.strip() for p in trend_section.split("\n\n") if p.strip()]
        for index in (1, 3, 5):
            if index >= len(paragraphs) or _is_heading(paragraphs[index]):
                continue
            cleaned = _strip_markdown(paragraphs[index])
            if len(cleaned) > 50:
                return _truncate(cleaned)

    lines = [line for line in text.split("\n") if line.strip()]
    preview = next(
        (
            line for line in lines
            if "Long-Term" in line or "Mid-Term" in line or "trend" in line or len(line) > 50
        ),
        lines[0] if lines else "",
    )
    return _truncate(_strip_markdown(preview))


def get_analysis_type_label(analysis_type: str) -> str:
    value = getattr(analysis_type, "value", analysis_type)
    return TYPE_LABELS.get(value, value.replace("_", " ", 1).upper())


def extract_overall_trend(analysis_text: str) -> OverallTrend:
    """Keyword vote over the whole report."""
    text = analysis_text.lower()

    bullish = sum(text.count(k) for k in BULLISH_KEYWORDS)
    bearish = sum(text.count(k) for k in BEARISH_KEYWORDS)
    neutral = sum(text.count(k) for k in NEUTRAL_KEYWORDS)

    match = _EXPLICIT_TREND.search(text)
    if match:
        statement = match.group(1)
        if any(w in statement for w in ("bullish", "upward", "rising")):
            bullish += EXPLICIT_TREND_BONUS
        elif any(w in statement for w in ("bearish", "downward", "declining")):
            bearish += EXPLICIT_TREND_BONUS
        elif any(w in statement for w in ("neutral", "sideways", "consolidation")):
            neutral += EXPLICIT_TREND_BONUS

    if bullish > bearish and bullish > neutral:
        return OverallTrend.BULLISH
    if bearish > bullish and bearish > neutral:
        return OverallTrend.BEARISH
    return OverallTrend.NEUTRAL


def format_date_et(dt: datetime) -> str:
    """e.g. 'October 17, 2026 at 04:05 PM EDT'. Naive values are UTC."""
    local = to_et(dt)
    return f"{local:%B} {local.day}, {local:%Y at %I:%M %p %Z}"


def format_relative_date_et(dt: datetime, now: Optional[datetime] = None) -> str:
    """
    Relative label by US/Eastern calendar day.

    'Today', 'Yesterday', 'N days ago', 'N weeks ago', then 'Oct 17, 2026 EDT'.
    """
    local = to_et(dt)
    current = to_et(now) if now is not None else get_et_now()
    diff_days = abs((current.date() - local.date()).days)

    if diff_days == 0:
        return "Today"
    if diff_days == 1:
        return "Yesterday"
    if diff_days < 7:
        return f"{diff_days} days ago"
    if diff_days < 30:
        return f"{-(-diff_days // 7)} weeks ago"
    return f"{local:%b} {local.day}, {local:%Y %Z}"
