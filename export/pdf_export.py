"""Term sheet export."""
from __future__ import annotations
from typing import List, Optional

from reportlab.lib import colors
from reportlab.lib.pagesizes import LETTER
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from flipquote.models import DealRecord, LiquidityBreakdown, LoanPurpose, UnderwritingResult
from flipquote.presets import DISCLAIMER

GRID = TableStyle(
    [
        ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
        ("BOX", (0, 0), (-1, -1), 1, colors.black),
        ("INNERGRID", (0, 0), (-1, -1), 0.5, colors.grey),
    ]
)


def _money(x) -> str:
    return f"${x:,.0f}"


def _pct(x) -> str:
    return "N/A" if x is None else f"{x * 100:.1f}%"


def deal_rows(deal: DealRecord) -> List[List[str]]:
    rows = [
        ["Loan Type", deal.loan_type.value],
        ["Purpose", deal.loan_purpose.value],
        ["Property", f"{deal.city}, {deal.property_state} {deal.zip_code}".strip()],
        ["Asset Type", deal.asset_type.value],
        ["FICO", str(deal.fico_score)],
    ]
    if deal.loan_purpose == LoanPurpose.PURCHASE:
        rows.append(["Purchase Price", _money(deal.purchase_price)])
    else:
        rows.append(["As-Is Value", _money(deal.as_is_value)])
        rows.append(["Payoff", _money(deal.payoff_amount)])
    if not deal.is_bridge:
        rows.append(["Rehab / Construction Budget", _money(deal.rehab)])
        rows.append(["After Repair Value", _money(deal.estimated_arv)])
    return rows


def term_rows(result: UnderwritingResult, liquidity: LiquidityBreakdown) -> List[List[str]]:
    rows = [
        ["Decision", f"{result.band.value} ({'Qualified' if result.qualified else 'Declined'})"],
        ["Borrower Tier", result.borrower_tier.value],
        ["Total Loan Amount", _money(result.max_loan_amount)],
        ["Day 1 Loan Amount", _money(result.day1_loan_amount)],
        ["Rehab Holdback", _money(result.holdback)],
        ["Interest Rate", f"{result.interest_rate}%"],
        ["Term", f"{liquidity.term_months} Months"],
        ["LTV", _pct(result.ltv)],
        ["LTC", _pct(result.ltc)],
        ["LTARV", _pct(result.arv_ltv)],
    ]
    if result.rehab_class is not None:
        rows.append(["Rehab Class", result.rehab_class.value])
    return rows


def liquidity_rows(liquidity: LiquidityBreakdown) -> List[List[str]]:
    return [
        [f"Origination ({liquidity.origination_points:g}%)", _money(liquidity.origination_fee)],
        ["Closing Costs (est.)", _money(liquidity.closing_costs)],
        ["Underwriting Fee", _money(liquidity.underwriting_fee)],
        ["Cash to Close", _money(liquidity.cash_to_close)],
        ["Interest Reserve (6 mo.)", _money(liquidity.interest_reserve)],
        ["Rehab Contingency", _money(liquidity.rehab_contingency)],
        ["Unfunded Rehab", _money(liquidity.unfunded_rehab)],
        ["Cash-Out Proceeds", _money(liquidity.cash_out_proceeds)],
        ["Net Liquidity Required", _money(liquidity.net_liquidity_required)],
    ]


def build_term_sheet_pdf(
    out_path: str,
    deal: DealRecord,
    result: UnderwritingResult,
    liquidity: LiquidityBreakdown,
    branding: Optional[dict] = None,
) -> None:
    branding = branding or {}
    styles = getSampleStyleSheet()
    doc = SimpleDocTemplate(
        out_path, pagesize=LETTER, leftMargin=36, rightMargin=36, topMargin=36, bottomMargin=36
    )
    story = []
    title = branding.get("title", "Preliminary Term Sheet")
    story += [Paragraph(f"<b>{title}</b>", styles["Title"]), Spacer(1, 6)]
    if branding.get("contact"):
        story.append(Paragraph(f"Contact: {branding['contact']}", styles["Normal"]))
    story += [Spacer(1, 12)]

    for heading, rows in (
        ("Deal Snapshot", deal_rows(deal)),
        ("Loan Terms", term_rows(result, liquidity)),
        ("Liquidity", liquidity_rows(liquidity)),
    ):
        t = Table([[heading, ""]] + rows, hAlign="LEFT", colWidths=[220, 300])
        t.setStyle(GRID)
        story += [t, Spacer(1, 12)]

    if result.reasoning:
        story += [
            Paragraph("<b>Underwriting Notes</b>", styles["Heading3"]),
            Spacer(1, 6),
            Paragraph(result.reasoning, styles["Normal"]),
            Spacer(1, 12),
        ]
    if result.analysis.is_potential_rural:
        story.append(
            Paragraph("Property may be located in a rural area; additional review applies.", styles["Normal"])
        )
    story += [Spacer(1, 12), Paragraph(f"<font size=8>{DISCLAIMER}</font>", styles["Normal"])]
    doc.build(story)
