"""
Playbook taxonomy for the recommendation engine.

  - ``SignalSource``     — which score engine a playbook trigger reads from.
  - ``PlaybookCategory`` — the program family a playbook belongs to; used to
    group relevance into the result's ``top_category``.

This module has NO imports from any other ``exit_intel`` package.
"""

from enum import StrEnum


class SignalSource(StrEnum):
    """Score engine feeding a playbook trigger."""

    DRS = "DRS"
    """Readiness score per BRI category (0–1, higher is healthier)."""

    RSS = "RSS"
    """Named risk discount rates (fraction of value at risk)."""

    BQS = "BQS"
    """Business quality adjustments (signed impact; negatives are problems)."""


class PlaybookCategory(StrEnum):
    """Program family of a playbook."""

    PERSONAL = "PERSONAL"
    FINANCIAL = "FINANCIAL"
    OPERATIONAL = "OPERATIONAL"
    LEGAL = "LEGAL"
    MARKET_GROWTH = "MARKET_GROWTH"
    DEAL_PREP = "DEAL_PREP"
