"""
Tests for recommend_playbooks() ranking, selection and summary figures.

Scenarios
---------
owner-dependent:       TRANSFERABILITY gap, Key-Person Risk, owner_dependency.
customer-concentrated: variant-suffixed RSS/BQS customer concentration names.
perfect:               all readiness 1.0, no discounts or adjustments.
"""

from __future__ import annotations

import pytest

from factories import healthy_drs, make_inputs

from exit_intel.recommendations.ranker import RecommendationTuning, recommend_playbooks
from exit_intel.recommendations.registry import (
    PLAYBOOK_REGISTRY,
    PlaybookDefinition,
    ScoringTrigger,
)
from exit_intel.taxonomy.playbook_taxonomy import PlaybookCategory, SignalSource

OWNER_TOP_3 = {
    "key-employee-retention",
    "owner-dependency-reduction",
    "management-team-bench-strength",
}


def _slugs(result, recommended_only: bool = False) -> list[str]:
    return [
        r.playbook.slug
        for r in result.recommendations
        if r.is_recommended or not recommended_only
    ]


def _single_drs_playbook(slug: str, category: PlaybookCategory, signal: str, order: int):
    return PlaybookDefinition(
        slug=slug,
        title=slug.title(),
        category=category,
        display_order=order,
        triggers=(ScoringTrigger(SignalSource.DRS, signal, 1.0),),
        impact_base_low=10_000,
        impact_base_high=20_000,
    )


# ── Shape ─────────────────────────────────────────────────────────────────────

class TestResultShape:
    def test_every_playbook_returned(self, owner_dependent_inputs):
        result = recommend_playbooks(owner_dependent_inputs)
        assert len(result.recommendations) == len(PLAYBOOK_REGISTRY)
        assert sorted(_slugs(result)) == sorted(p.slug for p in PLAYBOOK_REGISTRY)

    def test_exactly_three_recommended(self, owner_dependent_inputs):
        result = recommend_playbooks(owner_dependent_inputs)
        assert sum(r.is_recommended for r in result.recommendations) == 3

    def test_sorted_by_relevance_descending(self, customer_concentrated_inputs):
        scores = [r.relevance_score for r in recommend_playbooks(customer_concentrated_inputs).recommendations]
        assert scores == sorted(scores, reverse=True)

    def test_scores_bounded(self):
        inputs = make_inputs(
            drs=healthy_drs(FINANCIAL=-3.0, MARKET=0.0),
            rss={"Key-Person Risk": 5.0, "Documentation Quality": -1.0},
            bqs={"owner_dependency": -4.0, "recurring_revenue": 2.0},
        )
        for rec in recommend_playbooks(inputs).recommendations:
            assert 0.0 <= rec.relevance_score <= 1.0


# ── Scenarios ─────────────────────────────────────────────────────────────────

class TestScenarios:
    def test_owner_dependency_top_three(self, owner_dependent_inputs):
        result = recommend_playbooks(owner_dependent_inputs)
        assert set(_slugs(result, recommended_only=True)) == OWNER_TOP_3
        assert _slugs(result)[0] == "key-employee-retention"

    def test_owner_dependency_top_category(self, owner_dependent_inputs):
        assert recommend_playbooks(owner_dependent_inputs).top_category == "OPERATIONAL"

    def test_customer_concentration_prefix_matching(self, customer_concentrated_inputs):
        result = recommend_playbooks(customer_concentrated_inputs)
        assert _slugs(result)[0] == "customer-concentration-de-risking"
        assert "customer-concentration-de-risking" in _slugs(result, recommended_only=True)

    def test_positive_bqs_ignored(self):
        base = recommend_playbooks(make_inputs())
        boosted = recommend_playbooks(make_inputs(bqs={"recurring_revenue": 0.3, "growth_adjustment": 0.2}))
        assert [r.relevance_score for r in base.recommendations] == [
            r.relevance_score for r in boosted.recommendations
        ]

    def test_perfect_scores_zero_relevance(self):
        inputs = make_inputs(drs={k: 1.0 for k in healthy_drs()})
        result = recommend_playbooks(inputs)
        assert all(r.relevance_score == 0.0 for r in result.recommendations)
        # ties keep registry order
        assert _slugs(result) == [p.slug for p in PLAYBOOK_REGISTRY]
        assert _slugs(result, recommended_only=True) == [p.slug for p in PLAYBOOK_REGISTRY[:3]]
        assert result.top_category == "PERSONAL"

    def test_deterministic(self, owner_dependent_inputs):
        first = recommend_playbooks(owner_dependent_inputs)
        second = recommend_playbooks(owner_dependent_inputs)
        assert _slugs(first) == _slugs(second)
        assert first.total_addressable_impact == second.total_addressable_impact


# ── Active playbooks ──────────────────────────────────────────────────────────

class TestActivePlaybooks:
    def test_active_deprioritized_but_present(self):
        inputs = make_inputs(
            drs=healthy_drs(TRANSFERABILITY=0.1),
            rss={"Key-Person Risk": 0.25},
            bqs={"owner_dependency": -0.25},
            active=["owner-dependency-reduction"],
        )
        result = recommend_playbooks(inputs)

        active = next(r for r in result.recommendations if r.playbook.slug == "owner-dependency-reduction")
        assert active.is_recommended is False
        # relevance reported unadjusted
        assert active.relevance_score == pytest.approx(0.874, abs=1e-3)

        recommended = _slugs(result, recommended_only=True)
        assert len(recommended) == 3
        assert "owner-dependency-reduction" not in recommended
        assert "post-exit-role-planning" in recommended

    def test_active_ranked_by_half_relevance(self, owner_dependent_inputs):
        inputs = owner_dependent_inputs.model_copy(
            update={"active_playbook_slugs": ["owner-dependency-reduction"]}
        )
        slugs = _slugs(recommend_playbooks(inputs))
        # 0.874 * 0.5 = 0.437 sits below post-exit-role-planning (0.525)
        assert slugs.index("owner-dependency-reduction") > slugs.index("post-exit-role-planning")

    def test_unknown_active_slug_ignored(self, owner_dependent_inputs):
        inputs = owner_dependent_inputs.model_copy(update={"active_playbook_slugs": ["no-such-playbook"]})
        result = recommend_playbooks(inputs)
        assert set(_slugs(result, recommended_only=True)) == OWNER_TOP_3

    def test_fewer_candidates_than_top_n(self):
        registry = (
            _single_drs_playbook("a", PlaybookCategory.FINANCIAL, "FINANCIAL", 1),
            _single_drs_playbook("b", PlaybookCategory.MARKET_GROWTH, "MARKET", 2),
        )
        result = recommend_playbooks(make_inputs(active=["a"]), registry=registry)
        assert _slugs(result, recommended_only=True) == ["b"]


# ── Impact & summary ──────────────────────────────────────────────────────────

class TestImpactAndSummary:
    def test_total_impact_sums_recommended_only(self, owner_dependent_inputs):
        result = recommend_playbooks(owner_dependent_inputs)
        recommended = [r for r in result.recommendations if r.is_recommended]
        assert result.total_addressable_impact.low == sum(r.estimated_impact_low for r in recommended)
        assert result.total_addressable_impact.high == sum(r.estimated_impact_high for r in recommended)

    def test_owner_total_at_baseline(self, owner_dependent_inputs):
        # 60k+100k+80k / 180k+300k+250k
        total = recommend_playbooks(owner_dependent_inputs).total_addressable_impact
        assert (total.low, total.high) == (240_000, 730_000)

    def test_impact_scales_with_ebitda(self):
        inputs = make_inputs(drs=healthy_drs(TRANSFERABILITY=0.1), ebitda=2_000_000)
        rec = next(
            r for r in recommend_playbooks(inputs).recommendations
            if r.playbook.slug == "financial-statement-cleanup"
        )
        assert (rec.estimated_impact_low, rec.estimated_impact_high) == (100_000, 240_000)

    def test_negative_ebitda_zero_impact(self, owner_dependent_inputs):
        inputs = owner_dependent_inputs.model_copy(
            update={"company_profile": owner_dependent_inputs.company_profile.model_copy(
                update={"adjusted_ebitda": -250_000}
            )}
        )
        result = recommend_playbooks(inputs)
        assert all(r.estimated_impact_low == 0 for r in result.recommendations)
        assert (result.total_addressable_impact.low, result.total_addressable_impact.high) == (0, 0)

    def test_top_category_is_known(self, customer_concentrated_inputs):
        top = recommend_playbooks(customer_concentrated_inputs).top_category
        assert top in {c.value for c in PlaybookCategory}

    def test_top_category_tie_first_seen_wins(self):
        registry = (
            _single_drs_playbook("p1", PlaybookCategory.PERSONAL, "PERSONAL", 1),
            _single_drs_playbook("p2", PlaybookCategory.PERSONAL, "LEGAL_TAX", 2),
            _single_drs_playbook("f1", PlaybookCategory.FINANCIAL, "FINANCIAL", 3),
        )
        inputs = make_inputs(drs={"PERSONAL": 0.75, "LEGAL_TAX": 0.75, "FINANCIAL": 0.5})
        result = recommend_playbooks(inputs, registry=registry)
        # PERSONAL 0.25 + 0.25 ties FINANCIAL 0.5; FINANCIAL ranks first
        assert _slugs(result)[0] == "f1"
        assert result.top_category == "FINANCIAL"

    def test_empty_registry(self, owner_dependent_inputs):
        result = recommend_playbooks(owner_dependent_inputs, registry=())
        assert result.recommendations == []
        assert result.top_category == ""
        assert (result.total_addressable_impact.low, result.total_addressable_impact.high) == (0, 0)


# ── Tuning ────────────────────────────────────────────────────────────────────

class TestTuning:
    def test_top_n(self, owner_dependent_inputs):
        result = recommend_playbooks(owner_dependent_inputs, tuning=RecommendationTuning(top_n=5))
        assert sum(r.is_recommended for r in result.recommendations) == 5

    def test_top_n_zero(self, owner_dependent_inputs):
        result = recommend_playbooks(owner_dependent_inputs, tuning=RecommendationTuning(top_n=0))
        assert not any(r.is_recommended for r in result.recommendations)
        assert (result.total_addressable_impact.low, result.total_addressable_impact.high) == (0, 0)

    def test_ebitda_baseline(self, owner_dependent_inputs):
        tuning = RecommendationTuning(ebitda_baseline=500_000)
        total = recommend_playbooks(owner_dependent_inputs, tuning=tuning).total_addressable_impact
        assert (total.low, total.high) == (480_000, 1_460_000)

    def test_no_deprioritization_keeps_active_rank(self, owner_dependent_inputs):
        inputs = owner_dependent_inputs.model_copy(
            update={"active_playbook_slugs": ["key-employee-retention"]}
        )
        result = recommend_playbooks(inputs, tuning=RecommendationTuning(active_deprioritization=1.0))
        assert _slugs(result)[0] == "key-employee-retention"
        assert result.recommendations[0].is_recommended is False
