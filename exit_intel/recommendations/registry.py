"""
Playbook registry for the recommendation engine.

This module is the single source of truth for every playbook the engine can
recommend. Each ``PlaybookDefinition`` declares the signals it responds to
(``ScoringTrigger``) and its impact range at a $1,000,000 EBITDA baseline.

Authoring conventions
---------------------
* Slugs and display orders are unique.
* Trigger weights are non-negative and sum to 1.0 per playbook, so a
  playbook whose every signal is at full strength scores exactly 1.0.
* ``impact_base_low <= impact_base_high``.

``validate_registry()`` checks all of the above; the test suite runs it.

Signal names
------------
DRS  BRI category keys: FINANCIAL, TRANSFERABILITY, OPERATIONAL, MARKET,
     LEGAL_TAX, PERSONAL (exact match).
RSS  Risk discount display names. Matched by prefix, so
     "Customer Concentration" covers "Customer Concentration (Single)" and
     "Customer Concentration (Top 3)".
BQS  Quality adjustment factor keys. Exact match first, then prefix, so
     "customer_concentration" covers "customer_concentration_single".
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from exit_intel.taxonomy.playbook_taxonomy import PlaybookCategory, SignalSource


@dataclass(frozen=True)
class ScoringTrigger:
    """One weighted signal a playbook responds to.

    Attributes:
        source: Score engine the signal comes from.
        signal: DRS category, RSS discount name prefix, or BQS factor key.
        weight: Share of the playbook's relevance carried by this signal.
    """

    source: SignalSource
    signal: str
    weight: float


@dataclass(frozen=True)
class PlaybookDefinition:
    """Static playbook template.

    Attributes:
        slug: Stable identifier (also used for "active" lookups).
        title: Display title.
        category: Program family.
        display_order: Catalog position.
        triggers: Signals this playbook addresses, in declaration order.
        impact_base_low: Low value-impact estimate at $1M EBITDA.
        impact_base_high: High value-impact estimate at $1M EBITDA.
    """

    slug: str
    title: str
    category: PlaybookCategory
    display_order: int
    triggers: tuple[ScoringTrigger, ...]
    impact_base_low: float
    impact_base_high: float


def _drs(signal: str, weight: float) -> ScoringTrigger:
    return ScoringTrigger(SignalSource.DRS, signal, weight)


def _rss(signal: str, weight: float) -> ScoringTrigger:
    return ScoringTrigger(SignalSource.RSS, signal, weight)


def _bqs(signal: str, weight: float) -> ScoringTrigger:
    return ScoringTrigger(SignalSource.BQS, signal, weight)


# ── Registry ──────────────────────────────────────────────────────────────────
# Order here is the tie-break order of the ranker (stable sort).

PLAYBOOK_REGISTRY: tuple[PlaybookDefinition, ...] = (

    # ── Personal ───────────────────────────────────────────────────────────
    PlaybookDefinition(
        slug="exit-goals-and-timeline",
        title="Exit Goals & Timeline",
        category=PlaybookCategory.PERSONAL,
        display_order=1,
        triggers=(_drs("PERSONAL", 1.0),),
        impact_base_low=10_000,
        impact_base_high=40_000,
    ),
    PlaybookDefinition(
        slug="personal-financial-readiness",
        title="Personal Financial Readiness",
        category=PlaybookCategory.PERSONAL,
        display_order=2,
        triggers=(_drs("PERSONAL", 0.7), _drs("FINANCIAL", 0.3)),
        impact_base_low=20_000,
        impact_base_high=60_000,
    ),
    PlaybookDefinition(
        slug="post-exit-role-planning",
        title="Post-Exit Role Planning",
        category=PlaybookCategory.PERSONAL,
        display_order=3,
        triggers=(
            _drs("PERSONAL", 0.5),
            _rss("Key-Person Risk", 0.25),
            _drs("TRANSFERABILITY", 0.25),
        ),
        impact_base_low=15_000,
        impact_base_high=50_000,
    ),

    # ── Financial ──────────────────────────────────────────────────────────
    PlaybookDefinition(
        slug="financial-statement-cleanup",
        title="Financial Statement Cleanup",
        category=PlaybookCategory.FINANCIAL,
        display_order=4,
        triggers=(_drs("FINANCIAL", 0.6), _rss("Documentation Quality", 0.4)),
        impact_base_low=50_000,
        impact_base_high=120_000,
    ),
    PlaybookDefinition(
        slug="ebitda-normalization",
        title="EBITDA Normalization",
        category=PlaybookCategory.FINANCIAL,
        display_order=5,
        triggers=(_drs("FINANCIAL", 0.6), _bqs("margin_adjustment", 0.4)),
        impact_base_low=75_000,
        impact_base_high=200_000,
    ),
    PlaybookDefinition(
        slug="revenue-quality-analysis",
        title="Revenue Quality Analysis",
        category=PlaybookCategory.FINANCIAL,
        display_order=6,
        triggers=(
            _bqs("recurring_revenue", 0.4),
            _drs("FINANCIAL", 0.4),
            _bqs("margin_adjustment", 0.2),
        ),
        impact_base_low=60_000,
        impact_base_high=180_000,
    ),
    PlaybookDefinition(
        slug="working-capital-optimization",
        title="Working Capital Optimization",
        category=PlaybookCategory.FINANCIAL,
        display_order=7,
        triggers=(_drs("FINANCIAL", 0.7), _drs("OPERATIONAL", 0.3)),
        impact_base_low=40_000,
        impact_base_high=110_000,
    ),

    # ── Operational ────────────────────────────────────────────────────────
    PlaybookDefinition(
        slug="owner-dependency-reduction",
        title="Owner Dependency Reduction",
        category=PlaybookCategory.OPERATIONAL,
        display_order=8,
        triggers=(
            _drs("TRANSFERABILITY", 0.4),
            _rss("Key-Person Risk", 0.3),
            _bqs("owner_dependency", 0.3),
        ),
        impact_base_low=100_000,
        impact_base_high=300_000,
    ),
    PlaybookDefinition(
        slug="management-team-bench-strength",
        title="Management Team Bench Strength",
        category=PlaybookCategory.OPERATIONAL,
        display_order=9,
        triggers=(
            _drs("TRANSFERABILITY", 0.5),
            _rss("Key-Person Risk", 0.3),
            _drs("OPERATIONAL", 0.2),
        ),
        impact_base_low=80_000,
        impact_base_high=250_000,
    ),
    PlaybookDefinition(
        slug="key-employee-retention",
        title="Key Employee Retention",
        category=PlaybookCategory.OPERATIONAL,
        display_order=10,
        triggers=(
            _rss("Key-Person Risk", 0.4),
            _drs("TRANSFERABILITY", 0.4),
            _bqs("owner_dependency", 0.2),
        ),
        impact_base_low=60_000,
        impact_base_high=180_000,
    ),
    PlaybookDefinition(
        slug="sop-documentation",
        title="Standard Operating Procedures",
        category=PlaybookCategory.OPERATIONAL,
        display_order=11,
        triggers=(
            _drs("OPERATIONAL", 0.5),
            _drs("TRANSFERABILITY", 0.3),
            _rss("Documentation Quality", 0.2),
        ),
        impact_base_low=30_000,
        impact_base_high=90_000,
    ),
    PlaybookDefinition(
        slug="operational-kpi-dashboard",
        title="Operational KPI Dashboard",
        category=PlaybookCategory.OPERATIONAL,
        display_order=12,
        triggers=(_drs("OPERATIONAL", 0.7), _bqs("margin_adjustment", 0.3)),
        impact_base_low=25_000,
        impact_base_high=75_000,
    ),

    # ── Legal ──────────────────────────────────────────────────────────────
    PlaybookDefinition(
        slug="customer-contract-assignability",
        title="Customer Contract Assignability",
        category=PlaybookCategory.LEGAL,
        display_order=13,
        triggers=(
            _drs("LEGAL_TAX", 0.4),
            _rss("Customer Concentration", 0.3),
            _drs("MARKET", 0.3),
        ),
        impact_base_low=35_000,
        impact_base_high=100_000,
    ),
    PlaybookDefinition(
        slug="legal-tax-risk-cleanup",
        title="Legal & Tax Risk Cleanup",
        category=PlaybookCategory.LEGAL,
        display_order=14,
        triggers=(_rss("Legal/Tax Risk", 0.5), _drs("LEGAL_TAX", 0.5)),
        impact_base_low=40_000,
        impact_base_high=120_000,
    ),
    PlaybookDefinition(
        slug="ip-protection",
        title="Intellectual Property Protection",
        category=PlaybookCategory.LEGAL,
        display_order=15,
        triggers=(_drs("LEGAL_TAX", 0.6), _drs("MARKET", 0.4)),
        impact_base_low=20_000,
        impact_base_high=80_000,
    ),

    # ── Market & growth ────────────────────────────────────────────────────
    PlaybookDefinition(
        slug="customer-concentration-de-risking",
        title="Customer Concentration De-Risking",
        category=PlaybookCategory.MARKET_GROWTH,
        display_order=16,
        triggers=(
            _rss("Customer Concentration", 0.4),
            _bqs("customer_concentration", 0.4),
            _drs("MARKET", 0.2),
        ),
        impact_base_low=90_000,
        impact_base_high=280_000,
    ),
    PlaybookDefinition(
        slug="recurring-revenue-conversion",
        title="Recurring Revenue Conversion",
        category=PlaybookCategory.MARKET_GROWTH,
        display_order=17,
        triggers=(
            _bqs("recurring_revenue", 0.5),
            _drs("MARKET", 0.3),
            _bqs("growth_adjustment", 0.2),
        ),
        impact_base_low=70_000,
        impact_base_high=220_000,
    ),
    PlaybookDefinition(
        slug="growth-story-development",
        title="Growth Story Development",
        category=PlaybookCategory.MARKET_GROWTH,
        display_order=18,
        triggers=(_bqs("growth_adjustment", 0.5), _drs("MARKET", 0.5)),
        impact_base_low=50_000,
        impact_base_high=150_000,
    ),
    PlaybookDefinition(
        slug="scale-and-size-premium",
        title="Scale & Size Premium",
        category=PlaybookCategory.MARKET_GROWTH,
        display_order=19,
        triggers=(_bqs("size_discount", 0.6), _drs("MARKET", 0.4)),
        impact_base_low=60_000,
        impact_base_high=200_000,
    ),

    # ── Deal prep ──────────────────────────────────────────────────────────
    PlaybookDefinition(
        slug="data-room-readiness",
        title="Data Room Readiness",
        category=PlaybookCategory.DEAL_PREP,
        display_order=20,
        triggers=(
            _rss("Documentation Quality", 0.5),
            _drs("LEGAL_TAX", 0.25),
            _drs("FINANCIAL", 0.25),
        ),
        impact_base_low=30_000,
        impact_base_high=90_000,
    ),
    PlaybookDefinition(
        slug="quality-of-earnings-prep",
        title="Quality of Earnings Preparation",
        category=PlaybookCategory.DEAL_PREP,
        display_order=21,
        triggers=(
            _drs("FINANCIAL", 0.5),
            _rss("Documentation Quality", 0.3),
            _bqs("margin_adjustment", 0.2),
        ),
        impact_base_low=50_000,
        impact_base_high=150_000,
    ),
    PlaybookDefinition(
        slug="marketability-improvement",
        title="Marketability Improvement",
        category=PlaybookCategory.DEAL_PREP,
        display_order=22,
        triggers=(_rss("Lack of Marketability", 0.6), _drs("MARKET", 0.4)),
        impact_base_low=45_000,
        impact_base_high=150_000,
    ),
)


# ── Lookups ───────────────────────────────────────────────────────────────────

def get_playbook(slug: str) -> PlaybookDefinition:
    """Return the playbook with ``slug``.

    Raises:
        KeyError: If ``slug`` is not in the registry.
    """
    for playbook in PLAYBOOK_REGISTRY:
        if playbook.slug == slug:
            return playbook
    raise KeyError(f"Playbook '{slug}' not found in PLAYBOOK_REGISTRY.")


def playbooks_by_category(
    registry: tuple[PlaybookDefinition, ...] = PLAYBOOK_REGISTRY,
) -> dict[PlaybookCategory, list[PlaybookDefinition]]:
    """Group playbooks by category, in registry order."""
    result: dict[PlaybookCategory, list[PlaybookDefinition]] = {}
    for playbook in registry:
        result.setdefault(playbook.category, []).append(playbook)
    return result


def validate_registry(
    registry: tuple[PlaybookDefinition, ...] = PLAYBOOK_REGISTRY,
) -> list[str]:
    """Check authoring conventions; return a list of problems (empty = valid)."""
    problems: list[str] = []

    seen_slugs: set[str] = set()
    seen_orders: set[int] = set()
    for playbook in registry:
        if playbook.slug in seen_slugs:
            problems.append(f"duplicate slug '{playbook.slug}'")
        seen_slugs.add(playbook.slug)

        if playbook.display_order in seen_orders:
            problems.append(
                f"{playbook.slug}: duplicate display_order {playbook.display_order}"
            )
        seen_orders.add(playbook.display_order)

        if not playbook.triggers:
            problems.append(f"{playbook.slug}: no triggers")
        if any(t.weight < 0 for t in playbook.triggers):
            problems.append(f"{playbook.slug}: negative trigger weight")

        weight_sum = sum(t.weight for t in playbook.triggers)
        if not math.isclose(weight_sum, 1.0, abs_tol=1e-9):
            problems.append(f"{playbook.slug}: trigger weights sum to {weight_sum}")

        if playbook.impact_base_low > playbook.impact_base_high:
            problems.append(f"{playbook.slug}: impact_base_low > impact_base_high")

    return problems
