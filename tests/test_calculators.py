import math

import pytest

from flipquote.calculators import (
    base_leverage,
    cash_out_proceeds,
    check_minimum_loan,
    classify_rehab,
    classify_tier,
    liquidity_breakdown,
    loan_ratios,
    price_loan,
    resolve_leverage,
    structure_loan,
)
from flipquote.engine import calculate_underwriting
from flipquote.models import (
    BorrowerTier,
    DealRecord,
    ExperienceRange,
    ExperienceValueRange,
    LeverageCaps,
    LoanPurpose,
    LoanType,
    RehabClass,
)


def _flip(**kw):
    base = {
        "loan_type": LoanType.FIX_FLIP,
        "loan_purpose": LoanPurpose.PURCHASE,
        "fico_score": 720,
        "experience_range": ExperienceRange.THREE_NINE,
        "city": "Austin",
        "property_state": "TX",
        "purchase_price": 200000,
        "rehab_budget": 40000,
        "estimated_arv": 320000,
    }
    base.update(kw)
    return DealRecord(**base)


def _bridge_cash_out(**kw):
    base = {
        "loan_type": LoanType.BRIDGE,
        "loan_purpose": LoanPurpose.REFI_CO,
        "fico_score": 740,
        "experience_range": ExperienceRange.TEN_PLUS,
        "property_state": "TX",
        "as_is_value": 500000,
        "payoff_amount": 300000,
    }
    base.update(kw)
    return DealRecord(**base)


def test_tier_takes_stronger_bracket():
    assert classify_tier() == BorrowerTier.NO_EXPERIENCE
    assert classify_tier("0-2", "$5M to $10M") == BorrowerTier.EXPERIENCED
    assert classify_tier(ExperienceRange.TEN_PLUS, None) == BorrowerTier.INSTITUTIONAL
    assert classify_tier(None, ExperienceValueRange.TEN_PLUS) == BorrowerTier.INSTITUTIONAL
    assert classify_tier("unknown", None) == BorrowerTier.NO_EXPERIENCE


def test_rehab_class():
    assert classify_rehab(_flip()) == RehabClass.LIGHT
    assert classify_rehab(_flip(rehab_budget=100000)) == RehabClass.LIGHT
    assert classify_rehab(_flip(rehab_budget=100001)) == RehabClass.HEAVY
    assert classify_rehab(_flip(sqft_increase_over_25=True)) == RehabClass.HEAVY


def test_light_rehab_caps_experienced():
    caps, rehab_class, declines = base_leverage(_flip(), BorrowerTier.EXPERIENCED)
    assert (caps.ltaiv, caps.ltc, caps.ltarv) == (0.85, 0.90, 0.75)
    assert rehab_class == RehabClass.LIGHT
    assert declines == []


def test_heavy_rehab_no_experience_declined():
    caps, rehab_class, declines = base_leverage(
        _flip(rehab_budget=150000), BorrowerTier.NO_EXPERIENCE
    )
    assert rehab_class == RehabClass.HEAVY
    assert [d.code for d in declines] == ["HEAVY_REHAB_NO_EXP"]
    assert (caps.ltaiv, caps.ltc, caps.ltarv) == (0, 0, 0)


def test_ground_up_caps_depend_on_permits():
    deal = _flip(loan_type=LoanType.GROUND_UP, rehab_budget=0, construction_costs=300000)
    caps, rehab_class, _ = base_leverage(deal, BorrowerTier.INSTITUTIONAL)
    assert rehab_class is None
    assert caps.ltaiv == 0.60
    permitted, _, _ = base_leverage(
        deal.model_copy(update={"has_approved_permits": True}), BorrowerTier.INSTITUTIONAL
    )
    assert permitted.ltaiv == 0.70
    assert permitted.ltc == 0.85


def test_ground_up_no_experience_declined():
    deal = _flip(loan_type=LoanType.GROUND_UP, construction_costs=300000)
    _, _, declines = base_leverage(deal, BorrowerTier.NO_EXPERIENCE)
    assert declines[0].message == "Ground Up not available for 'No Experience' borrowers."


def test_bridge_caps():
    caps, _, declines = base_leverage(_bridge_cash_out(), BorrowerTier.EXPERIENCED)
    assert (caps.ltaiv, caps.ltc, caps.ltarv) == (0.70, 0.70, 0.0)
    assert declines == []
    _, _, declines = base_leverage(_bridge_cash_out(), BorrowerTier.NO_EXPERIENCE)
    assert [d.code for d in declines] == ["BRIDGE_CASH_OUT_NO_EXP"]


def test_reduction_floors_caps_at_zero():
    adj = LeverageCaps(ltaiv=0.10, ltc=0.90, ltarv=0.0, reduction=0.15).adjusted()
    assert adj.ltaiv == 0.0
    assert adj.ltc == pytest.approx(0.75)
    assert adj.ltarv == 0.0


def test_structure_texas_flip():
    deal = _flip()
    caps, _, _ = resolve_leverage(deal, BorrowerTier.EXPERIENCED)
    loan = structure_loan(deal, caps)
    assert loan["total"] == pytest.approx(216000)
    assert loan["day1"] == pytest.approx(170000)
    assert loan["holdback"] == pytest.approx(46000)


def test_structure_applies_reduction():
    deal = _flip(property_state="FL")
    caps, _, _ = resolve_leverage(deal, BorrowerTier.EXPERIENCED, 0.05)
    loan = structure_loan(deal, caps)
    assert loan["total"] == pytest.approx(240000 * 0.85)
    assert loan["day1"] == pytest.approx(200000 * 0.80)


def test_arv_constraint_binds():
    deal = _flip(estimated_arv=260000)
    caps, _, _ = resolve_leverage(deal, BorrowerTier.EXPERIENCED)
    assert structure_loan(deal, caps)["total"] == pytest.approx(195000)


def test_missing_arv_does_not_zero_the_loan():
    deal = _flip(estimated_arv=0)
    caps, _, _ = resolve_leverage(deal, BorrowerTier.EXPERIENCED)
    assert structure_loan(deal, caps)["total"] == pytest.approx(216000)


def test_rate_and_term_day1_capped_at_payoff():
    deal = _flip(loan_purpose=LoanPurpose.REFI_RT, as_is_value=200000, payoff_amount=100000)
    caps, _, _ = resolve_leverage(deal, BorrowerTier.EXPERIENCED)
    loan = structure_loan(deal, caps)
    assert loan["day1"] == pytest.approx(100000)
    assert loan["holdback"] == pytest.approx(116000)


def test_bridge_funds_everything_day_one():
    deal = _bridge_cash_out()
    caps, _, _ = resolve_leverage(deal, BorrowerTier.INSTITUTIONAL)
    loan = structure_loan(deal, caps)
    assert loan["total"] == pytest.approx(400000)
    assert loan["day1"] == loan["total"]
    assert loan["holdback"] == 0


def test_minimum_loan_message():
    res = check_minimum_loan(_flip(), 108000)
    assert res[0].code == "BELOW_MIN_LOAN"
    assert res[0].message == "Loan amount $108,000 is below $125,000 minimum."
    gu = _flip(loan_type=LoanType.GROUND_UP, construction_costs=100000)
    assert "$150,000" in check_minimum_loan(gu, 140000)[0].message
    assert check_minimum_loan(gu, 150000) == []


def test_pricing_ladder():
    deal = _flip(purchase_price=1600000, rehab_budget=400000, estimated_arv=2600000)
    assert price_loan(deal, BorrowerTier.EXPERIENCED, 1000000) == 9.375
    assert price_loan(deal, BorrowerTier.EXPERIENCED, 1300000) == 8.99
    assert price_loan(deal, BorrowerTier.NO_EXPERIENCE, 1300000) == 9.875
    assert price_loan(deal, BorrowerTier.EXPERIENCED, 1900000) == 9.875
    foreign = deal.model_copy(update={"is_foreign_national": True})
    assert price_loan(foreign, BorrowerTier.INSTITUTIONAL, 1000000) == 9.875


def test_ratios():
    r = loan_ratios(_flip(), 216000, 170000)
    assert r["ltv"] == pytest.approx(0.85)
    assert r["ltc"] == pytest.approx(0.90)
    assert r["arv_ltv"] == pytest.approx(0.675)

    b = loan_ratios(_bridge_cash_out(), 400000, 400000)
    assert b["ltv"] == pytest.approx(0.80)
    assert b["ltc"] is None and b["arv_ltv"] is None


def test_ratios_zero_basis():
    r = loan_ratios(_flip(purchase_price=0, estimated_arv=0), 0, 0)
    assert r == {"ltv": 0.0, "ltc": 0.0, "arv_ltv": 0.0}


def test_liquidity_texas_flip():
    deal = _flip()
    liq = liquidity_breakdown(deal, calculate_underwriting(deal))
    assert liq.origination_points == 2.0
    assert liq.origination_fee == 4320
    assert liq.closing_costs == 2160
    assert liq.cash_to_close == 36480
    assert liq.interest_reserve == 10125
    assert liq.rehab_contingency == 4600
    assert liq.unfunded_rehab == 0
    assert liq.gross_liquidity == 51205
    assert liq.cash_out_proceeds == 0
    assert liq.net_liquidity_required == 51205
    assert liq.term_months == 12
    assert liq.underwriting_fee == 1995


def test_liquidity_florida_points_and_ground_up_term():
    fl = _flip(property_state="FL")
    assert liquidity_breakdown(fl, calculate_underwriting(fl)).origination_points == 1.25
    gu = _flip(
        loan_type=LoanType.GROUND_UP,
        rehab_budget=0,
        construction_costs=300000,
        estimated_arv=700000,
        has_approved_permits=True,
    )
    assert liquidity_breakdown(gu, calculate_underwriting(gu)).term_months == 18


def test_bridge_cash_out_uses_three_percent():
    deal = _bridge_cash_out()
    result = calculate_underwriting(deal)
    assert cash_out_proceeds(deal, result) == pytest.approx(400000 - 300000 - 12000)
    liq = liquidity_breakdown(deal, result)
    assert liq.cash_out_proceeds == 88000
    assert liq.cash_to_close == 0
    assert liq.rehab_contingency == 0
    assert liq.unfunded_rehab == 0
    # 6 months of interest at 9.375% on 400k.
    assert liq.interest_reserve == 18750
    # 88k of proceeds exceeds the 18,750 reserve; net is floored at 0.
    assert liq.net_liquidity_required == 0


def test_flip_cash_out_uses_four_percent_of_total():
    deal = _flip(
        loan_purpose=LoanPurpose.REFI_CO,
        as_is_value=200000,
        payoff_amount=50000,
        experience_range=ExperienceRange.TEN_PLUS,
    )
    result = calculate_underwriting(deal)
    expected = result.day1_loan_amount - 50000 - result.max_loan_amount * 0.04
    assert cash_out_proceeds(deal, result) == pytest.approx(expected)


def test_negative_proceeds_reported_as_zero():
    deal = _flip(
        loan_purpose=LoanPurpose.REFI_CO,
        as_is_value=200000,
        payoff_amount=190000,
        experience_range=ExperienceRange.TEN_PLUS,
    )
    result = calculate_underwriting(deal)
    assert cash_out_proceeds(deal, result) < 0
    assert liquidity_breakdown(deal, result).cash_out_proceeds == 0


def test_liquidity_fields_are_non_negative_ints():
    for deal in (_flip(), _flip(purchase_price=0), _bridge_cash_out(payoff_amount=900000)):
        liq = liquidity_breakdown(deal, calculate_underwriting(deal))
        for name, value in liq.model_dump().items():
            if name == "origination_points":
                continue
            assert isinstance(value, int), name
            assert value >= 0, name
            assert not math.isnan(value)


def test_overflowing_sheet_values_still_quote():
    deal = _flip(purchase_price="1e400", estimated_arv=float("inf"))
    assert deal.purchase_price == 0
    assert deal.estimated_arv == 0
    liq = liquidity_breakdown(deal, calculate_underwriting(deal))
    assert all(v >= 0 for v in liq.model_dump().values())
