"""Batch quoting and what-if comparisons."""
from __future__ import annotations

import math
from typing import Dict, List

import pandas as pd

from flipquote.calculators import liquidity_breakdown
from flipquote.engine import calculate_underwriting
from flipquote.models import MONEY_FIELDS, DealRecord, ExperienceRange
from flipquote.utils import nz_series

SUMMARY_COLUMNS = [
    "band",
    "qualified",
    "borrower_tier",
    "max_loan_amount",
    "day1_loan_amount",
    "holdback",
    "interest_rate",
    "ltv",
    "cash_to_close",
    "cash_out_proceeds",
    "net_liquidity_required",
    "reasoning",
]

NEXT_EXPERIENCE = {
    None: ExperienceRange.THREE_NINE,
    ExperienceRange.ZERO_TWO: ExperienceRange.THREE_NINE,
    ExperienceRange.THREE_NINE: ExperienceRange.TEN_PLUS,
    ExperienceRange.TEN_PLUS: ExperienceRange.TEN_PLUS,
}


def summarize(deal: DealRecord) -> dict:
    """Headline quote figures for one deal."""

    result = calculate_underwriting(deal)
    liq = liquidity_breakdown(deal, result)
    return {
        "band": result.band.value,
        "qualified": result.qualified,
        "borrower_tier": result.borrower_tier.value,
        "max_loan_amount": result.max_loan_amount,
        "day1_loan_amount": result.day1_loan_amount,
        "holdback": result.holdback,
        "interest_rate": result.interest_rate,
        "ltv": result.ltv,
        "cash_to_close": liq.cash_to_close,
        "cash_out_proceeds": liq.cash_out_proceeds,
        "net_liquidity_required": liq.net_liquidity_required,
        "reasoning": result.reasoning,
    }


def _row_to_deal(row: dict) -> DealRecord:
    clean = {
        k: v
        for k, v in row.items()
        if v is not None and not (isinstance(v, float) and math.isnan(v))
    }
    return DealRecord.model_validate(clean)


def quote_frame(df: pd.DataFrame) -> pd.DataFrame:
    """Quote every row of a deal sheet.

    Columns are named after ``DealRecord`` fields.  Blank cells fall back to
    the model defaults, so a sheet only needs the columns it uses.
    """

    if df is None or df.empty:
        return pd.DataFrame(columns=SUMMARY_COLUMNS)
    out = df.copy()
    for c in MONEY_FIELDS:
        if c in out.columns:
            out[c] = nz_series(out[c])
    rows: List[dict] = [summarize(_row_to_deal(r)) for r in out.to_dict("records")]
    return pd.DataFrame(rows, index=df.index, columns=SUMMARY_COLUMNS)


def what_if_quote(deal: DealRecord) -> Dict[str, dict]:
    """Quote the deal alongside common borrower-side adjustments."""

    variants = {
        "base": deal,
        "fico_plus_40": deal.model_copy(update={"fico_score": deal.fico_score + 40}),
        "permits_approved": deal.model_copy(update={"has_approved_permits": True}),
        "experience_up": deal.model_copy(
            update={"experience_range": NEXT_EXPERIENCE[deal.experience_range]}
        ),
        "price_minus_5pct": deal.model_copy(
            update={"purchase_price": deal.purchase_price * 0.95}
        ),
    }
    return {name: summarize(d) for name, d in variants.items()}
