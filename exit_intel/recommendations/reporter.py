"""
Recommendation report writer: JSON output for ranked playbook results.

All functions are pure I/O, no DB access. They serialize an in-memory
``RecommendationResult`` into plain dicts and write them to disk.

Output layout
-------------
    {
      "schema_version": "v1",
      "company_id": "...",
      "generated_at": "YYYY-MM-DD",
      "top_category": "OPERATIONAL",
      "total_addressable_impact": {"low": ..., "high": ...},
      "recommendations": [ {rank, slug, title, category, ...}, ... ]
    }
"""

from __future__ import annotations

import json
import logging
from datetime import date
from pathlib import Path
from typing import Any

from exit_intel.recommendations.ranker import PlaybookRecommendation, RecommendationResult

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "v1"


def recommendation_to_dict(rec: PlaybookRecommendation, rank: int) -> dict[str, Any]:
    """Flatten one recommendation into a JSON-serializable dict."""
    return {
        "rank":                  rank,
        "slug":                  rec.playbook.slug,
        "title":                 rec.playbook.title,
        "category":              rec.playbook.category.value,
        "relevance_score":       round(rec.relevance_score, 4),
        "estimated_impact_low":  rec.estimated_impact_low,
        "estimated_impact_high": rec.estimated_impact_high,
        "is_recommended":        rec.is_recommended,
        "signal_breakdown": [
            {
                "source":       s.source.value,
                "signal":       s.signal,
                "weight":       s.weight,
                "raw_strength": round(s.raw_strength, 4),
                "contribution": round(s.contribution, 4),
            }
            for s in rec.signal_breakdown
        ],
    }


def result_to_dict(
    result: RecommendationResult,
    company_id: str = "",
    run_date: date | None = None,
) -> dict[str, Any]:
    """Serialize a full ``RecommendationResult`` (ranked order preserved)."""
    if run_date is None:
        run_date = date.today()

    return {
        "schema_version": SCHEMA_VERSION,
        "company_id":     company_id,
        "generated_at":   run_date.isoformat(),
        "top_category":   result.top_category,
        "total_addressable_impact": {
            "low":  result.total_addressable_impact.low,
            "high": result.total_addressable_impact.high,
        },
        "recommendations": [
            recommendation_to_dict(rec, rank)
            for rank, rec in enumerate(result.recommendations, start=1)
        ],
    }


def write_recommendation_json(
    result: RecommendationResult,
    output_path: Path,
    company_id: str = "",
    run_date: date | None = None,
) -> Path:
    """Write the result to ``output_path`` as indented JSON.

    Args:
        result:      Output of ``recommend_playbooks()``.
        output_path: Target file (parent directories are created).
        company_id:  Included in the payload for provenance.
        run_date:    Date label. Defaults to today.

    Returns:
        ``output_path``.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    payload = result_to_dict(result, company_id=company_id, run_date=run_date)
    with output_path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)

    recommended = sum(1 for r in result.recommendations if r.is_recommended)
    logger.info(
        "Recommendation JSON written: %s (%d playbooks, %d recommended)",
        output_path, len(result.recommendations), recommended,
    )
    return output_path
