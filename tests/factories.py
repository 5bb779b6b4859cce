"""
Test doubles and input factories shared across test packages.

Imported directly by test modules (``from factories import make_inputs``);
``conftest.py`` wraps them as fixtures.
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Iterable
from typing import Any, Optional

from exit_intel.models.recommendation import (
    CompanyProfile,
    DRSCategoryInput,
    QualityAdjustmentInput,
    RecommendationInputs,
    RiskDiscountInput,
)
from exit_intel.taxonomy.dossier_taxonomy import ALL_SECTIONS, SectionName


# ── Section builder stub ──────────────────────────────────────────────────────

class StubSectionBuilder:
    """In-memory ``SectionBuilder`` that records every call.

    Attributes:
        data: Section content served to the updater (mutate between updates).
        calls: ``(kind, company_id, sections)`` per build call, kind is
            ``"all"`` or ``"partial"``.
        fail_with: Raised from every build while set.
        omit: Sections silently left out of the builder output.
        before_build: One-shot hook run at the start of the next build.
    """

    def __init__(self) -> None:
        self.data: dict[SectionName, Optional[dict[str, Any]]] = {
            s: {"section": s.value, "rev": 1} for s in ALL_SECTIONS
        }
        self.calls: list[tuple[str, str, tuple[SectionName, ...]]] = []
        self.fail_with: Optional[Exception] = None
        self.omit: set[SectionName] = set()
        self.before_build: Optional[Callable[[], None]] = None

    def bump(self, section: SectionName, **fields: Any) -> None:
        """Change one section's content so the next rebuild produces new data."""
        current = dict(self.data.get(section) or {})
        current["rev"] = current.get("rev", 0) + 1
        current.update(fields)
        self.data[section] = current

    def build_all_sections(self, company_id: str) -> dict[SectionName, Any]:
        self.calls.append(("all", company_id, ALL_SECTIONS))
        return self._build(ALL_SECTIONS)

    def build_sections(
        self,
        company_id: str,
        names: Iterable[SectionName],
    ) -> dict[SectionName, Any]:
        names = tuple(names)
        self.calls.append(("partial", company_id, names))
        return self._build(names)

    def _build(self, names: tuple[SectionName, ...]) -> dict[SectionName, Any]:
        if self.before_build is not None:
            hook, self.before_build = self.before_build, None
            hook()
        if self.fail_with is not None:
            raise self.fail_with
        return {
            name: copy.deepcopy(self.data.get(name))
            for name in names
            if name not in self.omit
        }


# ── Recommendation inputs ─────────────────────────────────────────────────────

def healthy_drs(**overrides: float) -> dict[str, float]:
    """Every BRI category at 0.9 readiness, with per-category overrides."""
    drs = {
        "FINANCIAL": 0.9, "TRANSFERABILITY": 0.9, "OPERATIONAL": 0.9,
        "MARKET": 0.9, "LEGAL_TAX": 0.9, "PERSONAL": 0.9,
    }
    drs.update(overrides)
    return drs


def make_inputs(
    drs: Optional[dict[str, float]] = None,
    rss: Optional[dict[str, float]] = None,
    bqs: Optional[dict[str, float]] = None,
    ebitda: float = 1_000_000,
    active: Optional[list[str]] = None,
) -> RecommendationInputs:
    """Build ``RecommendationInputs`` from compact name→value dicts.

    ``drs`` defaults to every BRI category at 0.7 readiness.
    """
    if drs is None:
        drs = {
            "FINANCIAL": 0.7, "TRANSFERABILITY": 0.7, "OPERATIONAL": 0.7,
            "MARKET": 0.7, "LEGAL_TAX": 0.7, "PERSONAL": 0.7,
        }
    return RecommendationInputs(
        drs_categories=[DRSCategoryInput(category=k, score=v) for k, v in drs.items()],
        risk_discounts=[RiskDiscountInput(name=k, rate=v) for k, v in (rss or {}).items()],
        quality_adjustments=[
            QualityAdjustmentInput(factor=k, impact=v) for k, v in (bqs or {}).items()
        ],
        company_profile=CompanyProfile(adjusted_ebitda=ebitda, annual_revenue=ebitda * 5),
        active_playbook_slugs=active or [],
    )
