from __future__ import annotations
import math
from typing import List, Optional, Tuple

from flipquote import presets
from flipquote.models import (
    BorrowerTier,
    DealRecord,
    ExperienceRange,
    ExperienceValueRange,
    LeverageCaps,
    LiquidityBreakdown,
    LoanPurpose,
    LoanType,
    RehabClass,
    UnderwritingResult,
)
from flipquote.rules import RuleResult
from flipquote.utils import fmt_amount, nz

COUNT_RANK = {
    ExperienceRange.ZERO_TWO.value: 0,
    ExperienceRange.THREE_NINE.value: 1,
    ExperienceRange.TEN_PLUS.value: 2,
}
VALUE_RANK = {
    ExperienceValueRange.ZERO_FIVE.value: 0,
    ExperienceValueRange.FIVE_TEN.value: 1,
    ExperienceValueRange.TEN_PLUS.value: 2,
}
TIER_BY_RANK = {
    0: BorrowerTier.NO_EXPERIENCE,
    1: BorrowerTier.EXPERIENCED,
    2: BorrowerTier.INSTITUTIONAL,
}


def classify_tier(experience_range=None, experience_value_range=None) -> BorrowerTier:
    """Map experience brackets to a borrower tier.

    The stronger of deal count and dollar volume wins, so an investor with a
    few large projects is credited the same as one with many small flips.
    Missing or unknown brackets rank lowest.
    """

    count_rank = COUNT_RANK.get(getattr(experience_range, "value", experience_range), 0)
    value_rank = VALUE_RANK.get(getattr(experience_value_range, "value", experience_value_range), 0)
    return TIER_BY_RANK[max(count_rank, value_rank)]


def classify_rehab(deal: DealRecord) -> RehabClass:
    basis = deal.basis
    ratio = deal.rehab / basis if basis > 0 else 0.0
    if ratio > presets.HEAVY_REHAB_RATIO or deal.sqft_increase_over_25:
        return RehabClass.HEAVY
    return RehabClass.LIGHT


def _decline(code: str, message: str) -> RuleResult:
    return RuleResult(code=code, severity="critical", message=message)


def base_leverage(
    deal: DealRecord, tier: BorrowerTier
) -> Tuple[LeverageCaps, Optional[RehabClass], List[RuleResult]]:
    """Look up the unreduced (LTAIV, LTC, LTARV) caps for the deal.

    Returns the caps, the rehab class (fix-and-flip only) and any product
    declines.  Unavailable combinations return zero caps.
    """

    res: List[RuleResult] = []
    rehab_class = None

    if deal.loan_type == LoanType.FIX_FLIP:
        rehab_class = classify_rehab(deal)
        caps = presets.FIX_FLIP_CAPS.get((rehab_class.value, tier.value))
        if caps is None:
            res.append(
                _decline(
                    "HEAVY_REHAB_NO_EXP",
                    "Heavy Rehab not available for 'No Experience' borrowers.",
                )
            )
            caps = (0.0, 0.0, 0.0)
    elif deal.loan_type == LoanType.GROUND_UP:
        caps = presets.GROUND_UP_CAPS.get((deal.has_approved_permits, tier.value))
        if caps is None:
            res.append(
                _decline(
                    "GROUND_UP_NO_EXP",
                    "Ground Up not available for 'No Experience' borrowers.",
                )
            )
            caps = (0.0, 0.0, 0.0)
    else:
        if tier == BorrowerTier.NO_EXPERIENCE and deal.loan_purpose == LoanPurpose.REFI_CO:
            res.append(
                _decline(
                    "BRIDGE_CASH_OUT_NO_EXP",
                    "Cash-out Bridge not available for 'No Experience' borrowers.",
                )
            )
        ltaiv = presets.BRIDGE_LTAIV[(tier.value, deal.loan_purpose.value)]
        caps = (ltaiv, ltaiv, 0.0)

    ltaiv, ltc, ltarv = caps
    return LeverageCaps(ltaiv=ltaiv, ltc=ltc, ltarv=ltarv), rehab_class, res


def resolve_leverage(
    deal: DealRecord, tier: BorrowerTier, reduction: float = 0.0
) -> Tuple[LeverageCaps, Optional[RehabClass], List[RuleResult]]:
    caps, rehab_class, res = base_leverage(deal, tier)
    return caps.model_copy(update={"reduction": reduction}), rehab_class, res


def structure_loan(deal: DealRecord, caps: LeverageCaps) -> dict:
    """Size the loan from cost, ARV and as-is caps.

    ``caps`` carries the stacked reduction; it is applied here.  Bridge loans
    fund everything on day one and carry no holdback.
    """

    adj = caps.adjusted()
    basis = deal.basis
    arv = deal.arv

    loan_by_cost = deal.total_cost * adj.ltc
    loan_by_arv = arv * adj.ltarv if (adj.ltarv > 0 and arv > 0) else math.inf
    total = min(loan_by_cost, loan_by_arv)

    day1 = basis * adj.ltaiv
    if deal.loan_purpose == LoanPurpose.REFI_RT and deal.payoff_amount > 0:
        day1 = min(day1, deal.payoff_amount)
    day1 = min(day1, total)

    if deal.is_bridge:
        return {"total": total, "day1": total, "holdback": 0.0}
    return {"total": total, "day1": day1, "holdback": max(0.0, total - day1)}


def minimum_loan(loan_type: LoanType) -> float:
    if loan_type == LoanType.GROUND_UP:
        return presets.MIN_LOAN_GROUND_UP
    return presets.MIN_LOAN_DEFAULT


def check_minimum_loan(deal: DealRecord, total: float) -> List[RuleResult]:
    floor = minimum_loan(deal.loan_type)
    if total >= floor:
        return []
    return [
        RuleResult(
            code="BELOW_MIN_LOAN",
            severity="critical",
            message=f"Loan amount ${fmt_amount(total)} is below ${fmt_amount(floor)} minimum.",
            context={"total": total, "minimum": floor},
        )
    ]


def realized_ltc(deal: DealRecord, total: float) -> float:
    total_cost = deal.total_cost
    return total / total_cost if total_cost > 0 else 0.0


def is_high_risk_pricing(deal: DealRecord, tier: BorrowerTier, total: float) -> bool:
    return (
        deal.is_foreign_national
        or tier == BorrowerTier.NO_EXPERIENCE
        or total > presets.HIGH_RISK_MAX_LOAN
        or realized_ltc(deal, total) > presets.HIGH_RISK_MAX_LTC
    )


def price_loan(deal: DealRecord, tier: BorrowerTier, total: float) -> float:
    """Fixed-rate ladder; no amortization or day-count logic."""

    if is_high_risk_pricing(deal, tier, total):
        return presets.RATE_HIGH_RISK
    if total > presets.LARGE_LOAN_THRESHOLD:
        return presets.RATE_LARGE_LOAN
    return presets.RATE_STANDARD


def loan_ratios(deal: DealRecord, total: float, day1: float) -> dict:
    """LTV, LTC and LTARV as fractions; LTC/LTARV are ``None`` for bridge."""

    basis = deal.basis
    arv = deal.arv
    if basis > 0:
        ltv = total / basis if deal.is_bridge else day1 / basis
    else:
        ltv = 0.0
    if deal.is_bridge:
        return {"ltv": ltv, "ltc": None, "arv_ltv": None}
    return {
        "ltv": ltv,
        "ltc": realized_ltc(deal, total),
        "arv_ltv": total / arv if arv > 0 else 0.0,
    }


def origination_points(state: str) -> float:
    return presets.ORIGINATION_POINTS.get(state, presets.ORIGINATION_POINTS_DEFAULT)


def term_months(loan_type: LoanType) -> int:
    if loan_type == LoanType.GROUND_UP:
        return presets.TERM_MONTHS_GROUND_UP
    return presets.TERM_MONTHS_DEFAULT


def _ceil(x) -> int:
    return int(math.ceil(max(0.0, nz(x))))


def cash_out_proceeds(deal: DealRecord, result: UnderwritingResult) -> float:
    """Raw cash to borrower on a cash-out refinance (may be negative)."""

    if deal.loan_purpose != LoanPurpose.REFI_CO:
        return 0.0
    total = result.max_loan_amount
    payoff = deal.payoff_amount
    if deal.is_bridge:
        return total - payoff - (total * presets.BRIDGE_CASH_OUT_COST_PCT)
    return result.day1_loan_amount - payoff - (total * presets.CASH_OUT_COST_PCT)


def liquidity_breakdown(deal: DealRecord, result: UnderwritingResult) -> LiquidityBreakdown:
    """Borrower-facing cash requirement for a structured quote.

    Every cash figure is rounded up to the whole dollar after flooring
    negative intermediates at zero.  Cash-out proceeds offset the liquidity
    requirement but never push it below zero.
    """

    total = result.max_loan_amount
    day1 = result.day1_loan_amount
    holdback = result.holdback

    points = origination_points(deal.property_state)
    origination_fee = total * (points / 100)
    closing_costs = total * presets.CLOSING_COST_PCT

    raw_cash_to_close = 0.0
    if deal.loan_purpose == LoanPurpose.PURCHASE:
        raw_cash_to_close = deal.purchase_price + origination_fee + closing_costs - day1
    elif deal.loan_purpose == LoanPurpose.REFI_RT:
        raw_cash_to_close = deal.payoff_amount + origination_fee + closing_costs - day1

    cash_to_close = _ceil(raw_cash_to_close)
    interest_reserve = _ceil(
        ((total * (result.interest_rate / 100)) / 12) * presets.INTEREST_RESERVE_MONTHS
    )
    if deal.is_bridge:
        rehab_contingency = 0
        unfunded_rehab = 0
    else:
        rehab_contingency = _ceil(holdback * presets.REHAB_CONTINGENCY_PCT)
        unfunded_rehab = _ceil(deal.rehab - holdback)

    gross = cash_to_close + interest_reserve + rehab_contingency + unfunded_rehab
    proceeds = _ceil(cash_out_proceeds(deal, result))
    net = _ceil(gross - proceeds)

    return LiquidityBreakdown(
        origination_points=points,
        origination_fee=_ceil(origination_fee),
        closing_costs=_ceil(closing_costs),
        cash_to_close=cash_to_close,
        interest_reserve=interest_reserve,
        rehab_contingency=rehab_contingency,
        unfunded_rehab=unfunded_rehab,
        gross_liquidity=gross,
        cash_out_proceeds=proceeds,
        net_liquidity_required=net,
        term_months=term_months(deal.loan_type),
        underwriting_fee=presets.UNDERWRITING_FEE,
    )
