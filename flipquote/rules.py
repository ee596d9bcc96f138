from __future__ import annotations
from typing import Literal, List, Dict, Any
from pydantic import BaseModel, Field

from flipquote import presets
from flipquote.models import BorrowerTier, DealRecord, LoanPurpose


class RuleResult(BaseModel):
    code: str
    severity: Literal["info", "warn", "critical"]
    message: str
    context: Dict[str, Any] = Field(default_factory=dict)


def check_geography(deal: DealRecord, tier: BorrowerTier) -> List[RuleResult]:
    res: List[RuleResult] = []
    city = deal.city.lower()
    state = deal.property_state

    if state == "FL" and any(c in city for c in presets.WESTERN_FL_CITIES):
        res.append(
            RuleResult(
                code="MSA_WESTERN_FL",
                severity="critical",
                message="Western Florida (Port Charlotte, Cape Coral, Lehigh Acres) is currently an ineligible area.",
                context={"city": deal.city, "state": state},
            )
        )
    if state == "NY" and any(c in city for c in presets.NYC_BOROUGHS):
        res.append(
            RuleResult(
                code="MSA_NYC_BOROUGHS",
                severity="critical",
                message="NYC 5 Boroughs are currently ineligible.",
                context={"city": deal.city, "state": state},
            )
        )
    # Whole-name match: Chicago suburbs remain eligible.
    if state == "IL" and city == presets.CHICAGO_CITY:
        res.append(
            RuleResult(
                code="MSA_CHICAGO_CITY",
                severity="critical",
                message="Chicago city limits are ineligible; only Chicago suburbs are permitted.",
                context={"city": deal.city, "state": state},
            )
        )
    return res


def check_credit_floors(deal: DealRecord, tier: BorrowerTier) -> List[RuleResult]:
    res: List[RuleResult] = []
    if deal.is_foreign_national:
        return res

    fico = deal.fico_score
    no_exp = tier == BorrowerTier.NO_EXPERIENCE
    if fico < presets.MIN_FICO:
        res.append(
            RuleResult(
                code="FICO_BELOW_MIN",
                severity="critical",
                message=f"Minimum FICO requirement is {presets.MIN_FICO} for US residents.",
                context={"fico": fico},
            )
        )
    if fico < presets.FICO_REQUIRES_EXPERIENCE and no_exp:
        res.append(
            RuleResult(
                code="FICO_REQUIRES_EXPERIENCE",
                severity="critical",
                message=f"Borrowers with FICO under {presets.FICO_REQUIRES_EXPERIENCE} must have at least 'Experienced' status.",
                context={"fico": fico},
            )
        )
    if no_exp and fico < presets.MIN_FICO_NO_EXP:
        res.append(
            RuleResult(
                code="FICO_BELOW_MIN_NO_EXP",
                severity="critical",
                message=f"Minimum FICO for 'No Experience' borrowers is {presets.MIN_FICO_NO_EXP}.",
                context={"fico": fico},
            )
        )
    return res


def check_mortgage_lates(deal: DealRecord, tier: BorrowerTier) -> List[RuleResult]:
    if not deal.mortgage_lates:
        return []
    return [
        RuleResult(
            code="MORTGAGE_LATES",
            severity="critical",
            message="Recent mortgage lates make the scenario ineligible.",
        )
    ]


def check_profit_margin(deal: DealRecord, tier: BorrowerTier) -> List[RuleResult]:
    if deal.is_bridge or deal.profit_margin >= presets.MIN_PROFIT_MARGIN:
        return []
    return [
        RuleResult(
            code="LOW_PROFIT_MARGIN",
            severity="warn",
            message=(
                "Low Profit Margin: Estimated project profit is below 5%. This project is flagged "
                "as High Risk due to insufficient equity/profit cushion."
            ),
            context={"margin": deal.profit_margin},
        )
    ]


def check_state_adjustment(deal: DealRecord, tier: BorrowerTier) -> List[RuleResult]:
    adj = presets.STATE_ADJUSTMENTS.get(deal.property_state)
    if adj is None:
        return []
    name, reduction = adj
    return [
        RuleResult(
            code="STATE_ADJUSTMENT",
            severity="warn",
            message=f"{name} Market Adjustment: {reduction * 100:g}% reduction applied.",
            context={"state": deal.property_state, "reduction": reduction},
        )
    ]


def check_credit_adjustment(deal: DealRecord, tier: BorrowerTier) -> List[RuleResult]:
    """Leverage cut for sub-680 domestic borrowers.

    The cash-out decline fires here as well as being implied by the general
    credit reduction; both results are kept.
    """

    res: List[RuleResult] = []
    if deal.is_foreign_national or deal.fico_score >= presets.FICO_LEVERAGE_THRESHOLD:
        return res
    res.append(
        RuleResult(
            code="FICO_LEVERAGE_REDUCTION",
            severity="warn",
            message=(
                f"FICO under {presets.FICO_LEVERAGE_THRESHOLD}: "
                f"{presets.LOW_FICO_REDUCTION * 100:g}% leverage reduction applied."
            ),
            context={"fico": deal.fico_score, "reduction": presets.LOW_FICO_REDUCTION},
        )
    )
    if deal.loan_purpose == LoanPurpose.REFI_CO and deal.fico_score < presets.CASH_OUT_MIN_FICO:
        res.append(
            RuleResult(
                code="CASH_OUT_FICO",
                severity="critical",
                message=f"Cash-out requires FICO {presets.CASH_OUT_MIN_FICO}+.",
                context={"fico": deal.fico_score},
            )
        )
    return res


# Evaluation order is user-visible in the reasoning string.
RULE_CHECKS = (
    check_geography,
    check_credit_floors,
    check_mortgage_lates,
    check_profit_margin,
    check_state_adjustment,
    check_credit_adjustment,
)


def evaluate_rules(deal: DealRecord, tier: BorrowerTier) -> List[RuleResult]:
    res: List[RuleResult] = []
    for check in RULE_CHECKS:
        res.extend(check(deal, tier))
    return res


def has_blocking(res: List[RuleResult]) -> bool:
    return any(r.severity == "critical" for r in res)


def failures(res: List[RuleResult]) -> List[str]:
    return [r.message for r in res if r.severity == "critical"]


def warnings(res: List[RuleResult]) -> List[str]:
    return [r.message for r in res if r.severity == "warn"]


def leverage_reduction(res: List[RuleResult]) -> float:
    """Sum of the reductions carried by the adjustment results."""
    return sum(float(r.context.get("reduction", 0.0)) for r in res)
