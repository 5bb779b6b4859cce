"""
Signal normalizer: turns the three score arrays into 0–1 signal strengths.

    DRS  category → clamp(1 − score, 0, 1)          low readiness = strong signal
    RSS  name     → clamp(rate / rss_max_rate, 0, 1)
    BQS  factor   → min(1, |impact| / bqs_max_impact) for impact < 0 only;
                    premiums (impact >= 0) are not problems and are dropped

Maps keep input order; a repeated key keeps its first position and takes the
last value. Prefix matching in ``matcher`` depends on that order.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from exit_intel.models.recommendation import (
    DRSCategoryInput,
    QualityAdjustmentInput,
    RiskDiscountInput,
)

RSS_MAX_RATE = 0.25
BQS_MAX_IMPACT = 0.35


@dataclass
class SignalMaps:
    """Per-request signal strengths keyed by signal name."""

    drs: dict[str, float] = field(default_factory=dict)
    rss: dict[str, float] = field(default_factory=dict)
    bqs: dict[str, float] = field(default_factory=dict)


def clamp(value: float, lo: float = 0.0, hi: float = 1.0) -> float:
    return max(lo, min(hi, value))


def build_signal_maps(
    drs_categories:      Iterable[DRSCategoryInput],
    risk_discounts:      Iterable[RiskDiscountInput],
    quality_adjustments: Iterable[QualityAdjustmentInput],
    rss_max_rate:        float = RSS_MAX_RATE,
    bqs_max_impact:      float = BQS_MAX_IMPACT,
) -> SignalMaps:
    """Normalize raw scores into signal maps.

    Args:
        drs_categories:      Readiness per BRI category.
        risk_discounts:      Named risk discount rates.
        quality_adjustments: Signed quality adjustments.
        rss_max_rate:        Discount rate that maps to full strength.
        bqs_max_impact:      Negative impact magnitude that maps to full strength.

    Returns:
        ``SignalMaps`` with every value in [0, 1].
    """
    maps = SignalMaps()

    for cat in drs_categories:
        maps.drs[cat.category] = clamp(1.0 - cat.score)

    for discount in risk_discounts:
        maps.rss[discount.name] = clamp(discount.rate / rss_max_rate)

    for adj in quality_adjustments:
        if adj.impact < 0:
            maps.bqs[adj.factor] = min(1.0, abs(adj.impact) / bqs_max_impact)

    return maps
