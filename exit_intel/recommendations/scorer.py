"""
Playbook scoring and impact personalization.

Relevance (0–1)
---------------
    relevance = clamp( Σ lookup_signal(trigger) * trigger.weight , 0, 1 )

Every trigger is recorded in the breakdown, including those with zero
strength, so the UI can show why a playbook did or did not rank.

Impact
------
Registry impact figures are stated at a $1,000,000 EBITDA baseline and scale
linearly with adjusted EBITDA (negative EBITDA scales to zero):

    scale = max(0, adjusted_ebitda) / baseline
    low   = round_half_up(impact_base_low  * scale)
    high  = round_half_up(impact_base_high * scale)

Both functions are pure: no DB, no I/O.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from exit_intel.recommendations.matcher import lookup_signal
from exit_intel.recommendations.registry import PlaybookDefinition
from exit_intel.recommendations.signals import SignalMaps, clamp
from exit_intel.taxonomy.playbook_taxonomy import SignalSource

EBITDA_BASELINE = 1_000_000.0


@dataclass
class SignalContribution:
    """One trigger's share of a playbook's relevance.

    Attributes:
        source:       Score engine of the trigger.
        signal:       Trigger signal name as declared in the registry.
        weight:       Trigger weight.
        raw_strength: Matched signal strength (0–1; 0 when unmatched).
        contribution: ``raw_strength * weight``.
    """

    source:       SignalSource
    signal:       str
    weight:       float
    raw_strength: float
    contribution: float


@dataclass
class PlaybookScore:
    """Relevance and per-trigger breakdown for one playbook."""

    relevance_score:  float
    signal_breakdown: list[SignalContribution] = field(default_factory=list)


@dataclass(frozen=True)
class ImpactRange:
    """Dollar value-impact range."""

    low:  int
    high: int


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves toward +infinity."""
    return int(math.floor(value + 0.5))


def score_playbook(playbook: PlaybookDefinition, maps: SignalMaps) -> PlaybookScore:
    """Score ``playbook`` against the request's signal maps."""
    breakdown: list[SignalContribution] = []
    total = 0.0

    for trigger in playbook.triggers:
        raw = lookup_signal(trigger, maps)
        contribution = raw * trigger.weight
        total += contribution
        breakdown.append(
            SignalContribution(
                source=trigger.source,
                signal=trigger.signal,
                weight=trigger.weight,
                raw_strength=raw,
                contribution=contribution,
            )
        )

    return PlaybookScore(relevance_score=clamp(total), signal_breakdown=breakdown)


def personalize_impact(
    playbook:        PlaybookDefinition,
    adjusted_ebitda: float,
    baseline:        float = EBITDA_BASELINE,
) -> ImpactRange:
    """Scale the playbook's baseline impact range to the company's EBITDA."""
    scale = max(0.0, adjusted_ebitda) / baseline
    return ImpactRange(
        low=round_half_up(playbook.impact_base_low * scale),
        high=round_half_up(playbook.impact_base_high * scale),
    )
