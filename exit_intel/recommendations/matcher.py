"""
Trigger matcher: resolves a ``ScoringTrigger`` against the signal maps.

Matching differs per source because the upstream names differ:

DRS   exact category key.
RSS   prefix scan first, then exact. Discount names carry variant suffixes,
      e.g. trigger "Customer Concentration" vs "Customer Concentration (Single)".
BQS   exact factor key first, then prefix scan, e.g. "customer_concentration"
      vs "customer_concentration_single".

A prefix scan returns the first key in map (input) order. Missing signals
resolve to 0.0.
"""

from __future__ import annotations

from typing import Optional

from exit_intel.recommendations.registry import ScoringTrigger
from exit_intel.recommendations.signals import SignalMaps
from exit_intel.taxonomy.playbook_taxonomy import SignalSource


def _prefix_match(values: dict[str, float], prefix: str) -> Optional[float]:
    for key, value in values.items():
        if key.startswith(prefix):
            return value
    return None


def lookup_signal(trigger: ScoringTrigger, maps: SignalMaps) -> float:
    """Return the raw strength (0–1) of ``trigger`` in ``maps``."""
    signal = trigger.signal

    if trigger.source == SignalSource.DRS:
        return maps.drs.get(signal, 0.0)

    if trigger.source == SignalSource.RSS:
        prefixed = _prefix_match(maps.rss, signal)
        if prefixed is not None:
            return prefixed
        return maps.rss.get(signal, 0.0)

    if trigger.source == SignalSource.BQS:
        if signal in maps.bqs:
            return maps.bqs[signal]
        prefixed = _prefix_match(maps.bqs, signal)
        return prefixed if prefixed is not None else 0.0

    return 0.0
