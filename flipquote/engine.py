"""Deterministic underwriting for a single deal.

``calculate_underwriting`` is a pure function of the Deal Record: it holds
no state between calls and never raises for ineligible deals.  Declines are
reported through ``band``, ``qualified`` and ``reasoning``.
"""

from __future__ import annotations

import logging
from typing import Callable, List

from flipquote import presets
from flipquote.calculators import (
    check_minimum_loan,
    classify_tier,
    loan_ratios,
    price_loan,
    resolve_leverage,
    structure_loan,
)
from flipquote.integrations import analyze_deal_with_ai
from flipquote.models import (
    AnalysisResult,
    Band,
    BorrowerTier,
    DealRecord,
    UnderwritingResult,
)
from flipquote.rules import (
    RuleResult,
    evaluate_rules,
    failures,
    has_blocking,
    leverage_reduction,
    warnings,
)

logger = logging.getLogger(__name__)

Analyzer = Callable[[DealRecord, int, str, float], AnalysisResult]


def baseline_analysis(deal: DealRecord, tier: BorrowerTier) -> AnalysisResult:
    """Analysis attached before (or without) the enrichment service."""

    basis = deal.basis
    margin = deal.profit_margin
    return AnalysisResult(
        narrativeSummary=f"Underwriting analysis for {tier.value} tier.",
        isPotentialRural=False,
        marketAnalysis={
            "trend": "Stable",
            "comparableSales": "Analysis pending verification",
            "domTrend": "45-60 days",
            "arvRealism": "N/A (Bridge)" if deal.is_bridge else "Fair",
        },
        financialSummary={
            "expectedProfit": deal.expected_profit,
            "expectedROI": margin,
            "allInCostVsArv": "Calculating...",
        },
        riskAssessment={
            "budgetToAivRatio": f"{deal.rehab / basis * 100:.1f}%" if basis > 0 else "N/A",
            "profitMarginAssessment": "Tight" if margin < presets.TIGHT_PROFIT_MARGIN else "Healthy",
            "marketRiskFactors": [],
            "timelineFeasibility": "Standard",
        },
        redFlags=[],
        improvementChecklist=[],
    )


def _band(fails: List[str], warns: List[str]) -> Band:
    if fails:
        return Band.RED
    if warns:
        return Band.YELLOW
    return Band.GREEN


def calculate_underwriting(deal: DealRecord) -> UnderwritingResult:
    """Run eligibility, tiering, leverage, structuring and pricing."""

    tier = classify_tier(deal.experience_range, deal.experience_value_range)
    results: List[RuleResult] = evaluate_rules(deal, tier)

    caps, rehab_class, product_declines = resolve_leverage(
        deal, tier, leverage_reduction(results)
    )
    results = results + product_declines

    total = day1 = holdback = 0.0
    if not has_blocking(results):
        loan = structure_loan(deal, caps)
        total, day1, holdback = loan["total"], loan["day1"], loan["holdback"]
        results = results + check_minimum_loan(deal, total)

    rate = price_loan(deal, tier, total)
    ratios = loan_ratios(deal, total, day1)

    fails = failures(results)
    warns = warnings(results)
    band = _band(fails, warns)

    logger.debug(
        "Underwrote %s/%s tier=%s band=%s total=%.2f codes=%s",
        deal.loan_type.value,
        deal.loan_purpose.value,
        tier.value,
        band.value,
        total,
        [r.code for r in results],
    )

    return UnderwritingResult(
        score=presets.SCORE_BY_BAND[band.value],
        band=band,
        qualified=band != Band.RED,
        max_loan_amount=total,
        day1_loan_amount=day1,
        holdback=holdback,
        interest_rate=rate,
        ltv=ratios["ltv"],
        ltc=ratios["ltc"],
        arv_ltv=ratios["arv_ltv"],
        rehab_class=rehab_class,
        reasoning=". ".join(fails + warns),
        analysis=baseline_analysis(deal, tier),
        borrower_tier=tier,
        failures=fails,
        warnings=warns,
        leverage=caps,
    )


def quote_deal(deal: DealRecord, analyzer: Analyzer = analyze_deal_with_ai) -> UnderwritingResult:
    """Deterministic result decorated with the enrichment analysis.

    The analyzer runs once, after the numbers are final, and only replaces
    ``analysis``.  If it raises, the baseline analysis is kept.
    """

    result = calculate_underwriting(deal)
    try:
        analysis = analyzer(deal, result.score, result.band.value, result.ltv)
    except Exception:
        logger.warning("Enrichment analyzer raised; keeping baseline analysis", exc_info=True)
        return result
    return result.model_copy(update={"analysis": analysis})
