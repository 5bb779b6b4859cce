"""
Input models for the playbook recommendation engine.

The three score arrays are produced by the valuation engine outside this
package; these models only pin down their shape. Values are not
range-checked here: the engine clamps scores, rates and impacts itself.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class DRSCategoryInput(BaseModel):
    """Readiness score for one BRI category.

    Attributes:
        category: Category key, e.g. ``"FINANCIAL"``, ``"TRANSFERABILITY"``.
        score: Readiness in 0–1 (higher is healthier).
        weight: Category weight in the overall readiness score.
    """

    model_config = ConfigDict(frozen=True)

    category: str
    score: float
    weight: float = 0.0


class RiskDiscountInput(BaseModel):
    """A named risk discount, e.g. ``"Customer Concentration (Single)"`` at 0.15."""

    model_config = ConfigDict(frozen=True)

    name: str
    rate: float
    explanation: str = ""


class QualityAdjustmentInput(BaseModel):
    """A business quality adjustment.

    Attributes:
        factor: Machine key, e.g. ``"customer_concentration_single"``.
        name: Display name.
        impact: Signed decimal (-0.15 = -15% multiple impact).
        category: Adjustment family (``"risk"``, ``"quality"``, ...).
    """

    model_config = ConfigDict(frozen=True)

    factor: str
    name: str = ""
    impact: float
    category: str = ""


class CompanyProfile(BaseModel):
    """Size figures used to personalize playbook impact."""

    model_config = ConfigDict(frozen=True)

    adjusted_ebitda: float
    annual_revenue: float = 0.0


class RecommendationInputs(BaseModel):
    """Everything ``recommend_playbooks()`` needs for one company."""

    model_config = ConfigDict(frozen=True)

    drs_categories: list[DRSCategoryInput] = Field(default_factory=list)
    risk_discounts: list[RiskDiscountInput] = Field(default_factory=list)
    quality_adjustments: list[QualityAdjustmentInput] = Field(default_factory=list)
    company_profile: CompanyProfile
    active_playbook_slugs: list[str] = Field(default_factory=list)
