from __future__ import annotations
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from flipquote.utils import nz


class LoanType(str, Enum):
    FIX_FLIP = "Fix and Flip"
    GROUND_UP = "Ground up construction"
    BRIDGE = "Bridge (no rehab)"


class LoanPurpose(str, Enum):
    PURCHASE = "Purchase"
    REFI_RT = "Rate and term refinance"
    REFI_CO = "Cash-out refinance"


class ExperienceRange(str, Enum):
    ZERO_TWO = "0-2"
    THREE_NINE = "3-9"
    TEN_PLUS = "Over 10"


class ExperienceValueRange(str, Enum):
    ZERO_FIVE = "$0-$5M"
    FIVE_TEN = "$5M to $10M"
    TEN_PLUS = "Over $10M"


class AssetType(str, Enum):
    SINGLE = "Single Family"
    TWO_UNIT = "Duplex"
    THREE_UNIT = "3 units"
    FOUR_UNIT = "Fourplex"


class BridgeExitStrategy(str, Enum):
    RENT = "Rent"
    SELL = "Sell"


class BorrowerTier(str, Enum):
    NO_EXPERIENCE = "No Experience"
    EXPERIENCED = "Experienced"
    INSTITUTIONAL = "Institutional"


class RehabClass(str, Enum):
    LIGHT = "Light Rehab"
    HEAVY = "Heavy Rehab"


class Band(str, Enum):
    GREEN = "Green"
    YELLOW = "Yellow"
    RED = "Red"


MONEY_FIELDS = (
    "purchase_price",
    "as_is_value",
    "payoff_amount",
    "rehab_budget",
    "construction_costs",
    "land_value",
    "estimated_arv",
    "monthly_rent",
    "monthly_tax",
    "monthly_hoa",
    "monthly_insurance",
    "liquidity",
    "property_sqft",
)


class DealRecord(BaseModel):
    """Borrower, property and deal profile collected at intake.

    Monetary inputs left blank arrive as ``None`` (or ``NaN``/infinity from a
    spreadsheet) and are stored as ``0``; negative amounts are clamped to
    ``0`` so downstream arithmetic only sees non-negative figures.
    """

    model_config = ConfigDict(frozen=True)

    loan_type: LoanType = LoanType.FIX_FLIP
    loan_purpose: LoanPurpose = LoanPurpose.PURCHASE

    fico_score: int = 0
    is_foreign_national: bool = False
    experience_range: Optional[ExperienceRange] = None
    experience_value_range: Optional[ExperienceValueRange] = None

    city: str = ""
    zip_code: str = ""
    property_state: str = ""
    asset_type: AssetType = AssetType.SINGLE
    property_sqft: float = 0.0
    sqft_increase_over_25: bool = False
    has_approved_permits: bool = False
    is_short_term_rental: bool = False
    exit_strategy: Optional[BridgeExitStrategy] = None

    purchase_price: float = 0.0
    as_is_value: float = 0.0
    payoff_amount: float = 0.0
    rehab_budget: float = 0.0
    construction_costs: float = 0.0
    land_value: float = 0.0
    estimated_arv: float = 0.0

    mortgage_lates: bool = False

    monthly_rent: float = 0.0
    monthly_tax: float = 0.0
    monthly_hoa: float = 0.0
    monthly_insurance: float = 0.0

    liquidity: float = 0.0

    @field_validator(*MONEY_FIELDS, mode="before")
    @classmethod
    def _money(cls, v):
        return max(0.0, nz(v))

    @field_validator("fico_score", mode="before")
    @classmethod
    def _fico(cls, v):
        return int(nz(v))

    @field_validator("city", "zip_code", mode="before")
    @classmethod
    def _strip(cls, v):
        return "" if v is None else str(v).strip()

    @field_validator("property_state", mode="before")
    @classmethod
    def _state(cls, v):
        return "" if v is None else str(v).strip().upper()

    @property
    def is_bridge(self) -> bool:
        return self.loan_type == LoanType.BRIDGE

    @property
    def basis(self) -> float:
        if self.loan_purpose == LoanPurpose.PURCHASE:
            return self.purchase_price
        return self.as_is_value

    @property
    def rehab(self) -> float:
        if self.is_bridge:
            return 0.0
        return self.rehab_budget or self.construction_costs

    @property
    def arv(self) -> float:
        if self.is_bridge:
            return self.basis
        return self.estimated_arv

    @property
    def total_cost(self) -> float:
        return self.basis + self.rehab

    @property
    def expected_profit(self) -> float:
        return self.arv - self.total_cost

    @property
    def profit_margin(self) -> float:
        total_cost = self.total_cost
        return self.expected_profit / total_cost if total_cost > 0 else 0.0


class LeverageCaps(BaseModel):
    ltaiv: float = 0.0
    ltc: float = 0.0
    ltarv: float = 0.0
    reduction: float = 0.0

    def adjusted(self) -> "LeverageCaps":
        """Caps after the stacked reduction, each floored at zero."""
        return LeverageCaps(
            ltaiv=max(0.0, self.ltaiv - self.reduction),
            ltc=max(0.0, self.ltc - self.reduction),
            ltarv=max(0.0, self.ltarv - self.reduction),
            reduction=0.0,
        )


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class MarketAnalysis(_CamelModel):
    trend: str
    comparable_sales: str = Field(alias="comparableSales")
    dom_trend: str = Field(alias="domTrend")
    arv_realism: str = Field(alias="arvRealism")


class FinancialSummary(_CamelModel):
    expected_profit: float = Field(alias="expectedProfit")
    expected_roi: float = Field(alias="expectedROI")
    all_in_cost_vs_arv: str = Field(alias="allInCostVsArv")


class RiskAssessment(_CamelModel):
    budget_to_aiv_ratio: str = Field(alias="budgetToAivRatio")
    profit_margin_assessment: str = Field(alias="profitMarginAssessment")
    market_risk_factors: List[str] = Field(default_factory=list, alias="marketRiskFactors")
    timeline_feasibility: str = Field(alias="timelineFeasibility")


class AnalysisResult(_CamelModel):
    """Qualitative decoration returned by the enrichment service."""

    narrative_summary: str = Field(alias="narrativeSummary")
    is_potential_rural: bool = Field(alias="isPotentialRural")
    market_analysis: MarketAnalysis = Field(alias="marketAnalysis")
    financial_summary: FinancialSummary = Field(alias="financialSummary")
    risk_assessment: RiskAssessment = Field(alias="riskAssessment")
    red_flags: List[str] = Field(default_factory=list, alias="redFlags")
    improvement_checklist: List[str] = Field(default_factory=list, alias="improvementChecklist")
    grounding_sources: Optional[List[Any]] = Field(default=None, alias="groundingSources")


class UnderwritingResult(BaseModel):
    score: int
    band: Band
    qualified: bool
    max_loan_amount: float = 0.0
    day1_loan_amount: float = 0.0
    holdback: float = 0.0
    interest_rate: float = 0.0
    ltv: float = 0.0
    ltc: Optional[float] = None
    arv_ltv: Optional[float] = None
    rehab_class: Optional[RehabClass] = None
    reasoning: str = ""
    analysis: AnalysisResult
    borrower_tier: BorrowerTier
    failures: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    leverage: LeverageCaps = Field(default_factory=LeverageCaps)


class LiquidityBreakdown(BaseModel):
    origination_points: float
    origination_fee: int
    closing_costs: int
    cash_to_close: int
    interest_reserve: int
    rehab_contingency: int
    unfunded_rehab: int
    gross_liquidity: int
    cash_out_proceeds: int
    net_liquidity_required: int
    term_months: int
    underwriting_fee: int
