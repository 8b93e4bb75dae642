"""
LLM Prompt Templates

Prompts for the three narrative stages: trend, support/resistance and
strategy.

RULES (enforced in all prompts):
- LLM does NO indicator math - every number comes from the data providers
- Plain text or bullet points only, no tables, no emoji
- Keep dollar signs and price figures as given
"""

import json
from typing import Optional

from stockanalyst.schemas.market import extract_interval_data, get_bars

# Most recent bars passed to the trend prompt per interval
TREND_BAR_LIMITS = {
    "week": 52,
    "day": 60,
    "30min": 65,
}

# =============================================================================
# TREND ANALYSIS
# =============================================================================

TREND_ANALYSIS_PROMPT = """You are a professional stock trader, specializing in multi-timeframe trend analysis.
Below is structured JSON with the most recent weekly, daily and 30-minute bars for {symbol}.
Each bar carries t (time), o, h, l, c, v and an indicators object (EMA, RSI 14, MACD 12/26/9, DMI 14, ATR 14).

Indicators have already been calculated. There is no need to calculate anything manually. Use the provided fields only.

Please output the analysis according to the following criteria:
1. Long-Term Trend (weekly bars)
Direction and strength from price versus Week 20/30/40 EMA, EMA slope and ordering, ADX and +DI/-DI.
2. Mid-Term Trend (daily bars)
Direction and strength from price versus Day 20/50/100/200 EMA, MACD histogram and RSI.
3. Short-Term Trend (30-minute bars)
Current momentum, recent swing highs and lows, RSI and MACD cross state.
4. Overall Trend
One of Bullish, Bearish or Neutral, with a one-paragraph justification reconciling the three timeframes.

Output Format Example (Write plain text, no tables, no emoji):

## {symbol} Trend Analysis

**Long-Term Trend (Weekly): Bullish**
Price holds above the Week 20 EMA at $512, which is rising above the Week 30 and Week 40 EMA.
ADX 28 with +DI above -DI confirms a steady uptrend.

**Mid-Term Trend (Daily): Neutral**
...

**Short-Term Trend (30-Minute): Bearish**
...

**Overall Trend: Bullish**
...

Write plain text in paragraphs or bullet points only, no tables, no emojis.

Multi-timeframe data:
{historical_data}"""

# =============================================================================
# SUPPORT & RESISTANCE ANALYSIS
# =============================================================================

SR_ANALYSIS_PROMPT = """You are a professional stock trader, specializing in price action analysis.
Below is a structured JSON containing only the symbol and merged timeframes data for analyzing support and resistance zones.

Significant levels have been calculated, including: cluster_price, current_role, failed_breakouts, with_ema, etc.
There is no need to calculate indicators manually. Use the provided fields only.

Please output the analysis according to the following criteria:
1. Support/Resistance Zone Analysis
Use the recent_close_price to determine current market position.
Scoring rules for each cluster_price (from timeframes.merged):
Base Score = number of tests
with_ema: +1 if overlapping with any daily EMA or weekly EMA (from with_ema field)
failed_breakouts: -1 if any failed_breakouts

2. Selection Rules (Based on how close the zone is to recent_close_price and total Score: High to Low)
Identify 2 strongest support zones below the recent_close_price:
If timeframes.merged.significant_levels.challenging_direction is support, label as "Immediate Support".
Identify 2 strongest resistance zones above the recent_close_price:
If timeframes.merged.significant_levels.challenging_direction is resistance, label as "Immediate Resistance".

Price Band: cluster_price
Indicate the strength of the zone:
Strong: >= 7 points
Moderate: 3-6 points
Weak: < 2 points (do not list)
State resonant EMAs explicitly in your rationale (e.g., Week 20 EMA, Day 50 EMA), and mention the source timeframe.

Output Format Example (Write plain text, no tables, no emoji):

## {symbol} {{Name of Company}} Support & Resistance Analysis

### Support Zones:
**S1 ~$500 (Strong | Moderate | Immediate Support)**
Hugs the Week 20 EMA and Day 50 EMA
Tested 6 times, last on 2025-06-18, all bounces held
Formed by a prior swing-low that was broken on 2025-05-30 and has since flipped into support
**S2 ~$510 (Moderate)**
Sits just 1.8 % beneath current price, touched 3 times in June
Coincides with Day 100 EMA

### Resistance Zones:
**R1 $530 (Strong | Moderate | Immediate Resistance)**
Marks the former swing-high of 2025-06-10, broken on 2025-06-24 and now acting as resistance
Overlaps Week 50 EMA
Saw one failed upside breakout on 2025-06-27
**R2 $535 (Moderate)**
Aligns with a gap-top from 2025-04-15, unfilled so far
Price rejected twice in May, latest rejection 2025-06-12

Write plain text in paragraphs or bullet points only, no tables, no emojis.

Filtered S&R data:
{support_resistance_levels}"""

# =============================================================================
# TRADING STRATEGIES
# =============================================================================

STRATEGY_ANALYSIS_PROMPT = """You are a professional price-action trader. Using the trend analysis and the support / resistance analysis below, design four short-term strategies for {symbol} on 15-minute to 1-hour charts.

Trend Analysis
{trend_analysis}

Support / Resistance Analysis
{support_resistance_analysis}

Writing Requirements
Align strategies with the trend.
Market is bullish or bearish: at least three setups in the trend direction.
If a counter-trend trade is included, give a clear reversal trigger and a minimum reward-to-risk (R:R) of 3.

For each strategy list, in order:
Strategy type (e.g., pullback-entry, breakout-retest, false-break trap)
Entry plan: price zone + 1-2 confirmation signals (Pin Bar, RSI < 30, M30-MACD bullish cross)

Exit plan
First target (R:R >= 1.5) and the reasoning (e.g., next resistance)
Extended target or trailing-stop rule

Stop-loss (usually $1-$2 outside the chosen zone, or ATR x 1.2)
Quantified R:R (e.g., 1 : 2.0)
(optional) Re-entry plan
(optional) Technical-indicator rationale

Format: paragraphs or bullet points only; no tables or emojis; keep dollar signs and price figures.

Example template
Strategy 1: Bullish pullback
- Entry: price dips into S3 $591.8-593.8, 30-min bullish engulfing + RSI rebounds from 40
- Targets: first target R1 lower edge $604.2 (R:R about 1 : 1.8); extended target R2 lower edge $610.4 (R:R about 1 : 3).
- Stop: 30-min close below $590 (i.e., $2 below S3).

Please provide four complete strategies in the above format."""


def select_recent_bars(historical_payload: Optional[dict], limits: Optional[dict] = None) -> dict:
    """Keep the last N bars of each interval; missing intervals become []."""
    limits = limits or TREND_BAR_LIMITS
    data = extract_interval_data(historical_payload)
    return {
        interval: get_bars(data, interval)[-limit:] if limit > 0 else []
        for interval, limit in limits.items()
    }


def format_trend_prompt(symbol: str, historical_payload: Optional[dict]) -> str:
    """Format the trend prompt with recent multi-timeframe bars."""
    bars = select_recent_bars(historical_payload)
    return TREND_ANALYSIS_PROMPT.format(
        symbol=symbol,
        historical_data=json.dumps(bars, indent=2, default=str),
    )


def format_sr_prompt(symbol: str, filtered_levels: dict) -> str:
    """Format the S&R prompt with the filtered level response."""
    return SR_ANALYSIS_PROMPT.format(
        symbol=symbol,
        support_resistance_levels=json.dumps(filtered_levels, indent=2, default=str),
    )


def format_strategy_prompt(symbol: str, trend_analysis: str, support_resistance_analysis: str) -> str:
    return STRATEGY_ANALYSIS_PROMPT.format(
        symbol=symbol,
        trend_analysis=trend_analysis,
        support_resistance_analysis=support_resistance_analysis,
    )
