"""
Recommendation ranker: scores every registry playbook for one company and
marks the top unclaimed candidates as recommended.

Usage flow
----------
1. build_signal_maps(...)          -> SignalMaps
2. score_playbook / personalize_impact per registry entry
3. stable sort by effective score (active playbooks count at half relevance)
4. first ``top_n`` non-active entries -> is_recommended = True
5. total addressable impact (recommended only) + top category

Active playbooks are deprioritized, never excluded: they stay in the result
with their unadjusted relevance, they just cannot be recommended again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from exit_intel.models.recommendation import RecommendationInputs
from exit_intel.recommendations.registry import PLAYBOOK_REGISTRY, PlaybookDefinition
from exit_intel.recommendations.scorer import (
    EBITDA_BASELINE,
    ImpactRange,
    SignalContribution,
    personalize_impact,
    score_playbook,
)
from exit_intel.recommendations.signals import BQS_MAX_IMPACT, RSS_MAX_RATE, build_signal_maps

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecommendationTuning:
    """Engine constants. Defaults reproduce the production engine."""

    rss_max_rate:            float = RSS_MAX_RATE
    bqs_max_impact:          float = BQS_MAX_IMPACT
    active_deprioritization: float = 0.5
    top_n:                   int = 3
    ebitda_baseline:         float = EBITDA_BASELINE


@dataclass
class PlaybookRecommendation:
    """One scored playbook in the ranked result.

    Attributes:
        playbook:              The registry entry.
        relevance_score:       0–1, unadjusted for active status.
        estimated_impact_low:  EBITDA-scaled low impact ($).
        estimated_impact_high: EBITDA-scaled high impact ($).
        signal_breakdown:      Per-trigger contributions.
        is_recommended:        True for the top unclaimed candidates.
    """

    playbook:              PlaybookDefinition
    relevance_score:       float
    estimated_impact_low:  int
    estimated_impact_high: int
    signal_breakdown:      list[SignalContribution] = field(default_factory=list)
    is_recommended:        bool = False


@dataclass
class RecommendationResult:
    """Ranked recommendations plus summary figures."""

    recommendations:          list[PlaybookRecommendation]
    total_addressable_impact: ImpactRange
    top_category:             str


def recommend_playbooks(
    inputs:   RecommendationInputs,
    registry: tuple[PlaybookDefinition, ...] = PLAYBOOK_REGISTRY,
    tuning:   RecommendationTuning = RecommendationTuning(),
) -> RecommendationResult:
    """Score, personalize and rank every playbook in ``registry``.

    Args:
        inputs:   Company signals, size and active playbooks.
        registry: Playbooks to consider (registry order breaks score ties).
        tuning:   Engine constants.

    Returns:
        ``RecommendationResult`` with all playbooks in ranked order.
    """
    maps = build_signal_maps(
        inputs.drs_categories,
        inputs.risk_discounts,
        inputs.quality_adjustments,
        rss_max_rate=tuning.rss_max_rate,
        bqs_max_impact=tuning.bqs_max_impact,
    )
    active = set(inputs.active_playbook_slugs)
    ebitda = inputs.company_profile.adjusted_ebitda

    scored: list[PlaybookRecommendation] = []
    for playbook in registry:
        score = score_playbook(playbook, maps)
        impact = personalize_impact(playbook, ebitda, baseline=tuning.ebitda_baseline)
        scored.append(
            PlaybookRecommendation(
                playbook=playbook,
                relevance_score=score.relevance_score,
                estimated_impact_low=impact.low,
                estimated_impact_high=impact.high,
                signal_breakdown=score.signal_breakdown,
            )
        )

    def effective(rec: PlaybookRecommendation) -> float:
        if rec.playbook.slug in active:
            return rec.relevance_score * tuning.active_deprioritization
        return rec.relevance_score

    # sorted() is stable: equal scores keep registry order
    ranked = sorted(scored, key=effective, reverse=True)

    recommended_count = 0
    for rec in ranked:
        if recommended_count >= tuning.top_n:
            break
        if rec.playbook.slug not in active:
            rec.is_recommended = True
            recommended_count += 1

    recommended = [r for r in ranked if r.is_recommended]
    total = ImpactRange(
        low=sum(r.estimated_impact_low for r in recommended),
        high=sum(r.estimated_impact_high for r in recommended),
    )

    top_category = _top_category(ranked)

    logger.debug(
        "Ranked %d playbooks | recommended=%s top_category=%s",
        len(ranked), [r.playbook.slug for r in recommended], top_category,
    )
    return RecommendationResult(
        recommendations=ranked,
        total_addressable_impact=total,
        top_category=top_category,
    )


def _top_category(ranked: list[PlaybookRecommendation]) -> str:
    """Category with the highest summed relevance; first seen wins ties."""
    totals: dict[str, float] = {}
    for rec in ranked:
        category = rec.playbook.category.value
        totals[category] = totals.get(category, 0.0) + rec.relevance_score

    top_category = ""
    top_score = -1.0
    for category, total in totals.items():
        if total > top_score:
            top_category = category
            top_score = total
    return top_category
