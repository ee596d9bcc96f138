DISCLAIMER = (
    "Quotes are preliminary estimates generated from borrower-supplied figures. "
    "Final terms are subject to appraisal, title, background and credit review, "
    "and underwriter discretion. Rates and leverage may change without notice."
)

# Ineligible sub-markets. City fragments are matched against the lower-cased
# city name within the given state.
WESTERN_FL_CITIES = ("port charlotte", "cape coral", "lehigh acres")
NYC_BOROUGHS = ("brooklyn", "queens", "manhattan", "bronx", "staten island", "new york city")
CHICAGO_CITY = "chicago"

MIN_FICO = 620
MIN_FICO_NO_EXP = 660
FICO_REQUIRES_EXPERIENCE = 680
FICO_LEVERAGE_THRESHOLD = 680
CASH_OUT_MIN_FICO = 680

MIN_PROFIT_MARGIN = 0.05
TIGHT_PROFIT_MARGIN = 0.10
HEAVY_REHAB_RATIO = 0.50

# Leverage reductions subtracted from every cap.
STATE_ADJUSTMENTS = {"FL": ("Florida", 0.05)}
LOW_FICO_REDUCTION = 0.10

# (LTAIV, LTC, LTARV) caps.
# Fix and flip rows are keyed by rehab class, ground up rows by permit status.
FIX_FLIP_CAPS = {
    ("Light Rehab", "Institutional"): (0.90, 0.95, 0.75),
    ("Light Rehab", "Experienced"): (0.85, 0.90, 0.75),
    ("Light Rehab", "No Experience"): (0.75, 0.80, 0.70),
    ("Heavy Rehab", "Institutional"): (0.85, 0.85, 0.75),
    ("Heavy Rehab", "Experienced"): (0.85, 0.85, 0.70),
}
GROUND_UP_CAPS = {
    (True, "Institutional"): (0.70, 0.85, 0.75),
    (False, "Institutional"): (0.60, 0.85, 0.75),
    (True, "Experienced"): (0.70, 0.85, 0.70),
    (False, "Experienced"): (0.60, 0.85, 0.70),
}
# Bridge rows give LTAIV only; LTC mirrors it and LTARV is unused.
BRIDGE_LTAIV = {
    ("Institutional", "Purchase"): 0.85,
    ("Institutional", "Rate and term refinance"): 0.80,
    ("Institutional", "Cash-out refinance"): 0.80,
    ("Experienced", "Purchase"): 0.85,
    ("Experienced", "Rate and term refinance"): 0.75,
    ("Experienced", "Cash-out refinance"): 0.70,
    ("No Experience", "Purchase"): 0.75,
    ("No Experience", "Rate and term refinance"): 0.70,
    ("No Experience", "Cash-out refinance"): 0.70,
}

MIN_LOAN_GROUND_UP = 150000
MIN_LOAN_DEFAULT = 125000

# Rate ladder (annual %, interest only).
RATE_HIGH_RISK = 9.875
RATE_LARGE_LOAN = 8.99
RATE_STANDARD = 9.375
HIGH_RISK_MAX_LOAN = 3000000
HIGH_RISK_MAX_LTC = 0.90
LARGE_LOAN_THRESHOLD = 1200000

ORIGINATION_POINTS = {"FL": 1.25}
ORIGINATION_POINTS_DEFAULT = 2.0
CLOSING_COST_PCT = 0.01
INTEREST_RESERVE_MONTHS = 6
REHAB_CONTINGENCY_PCT = 0.10
CASH_OUT_COST_PCT = 0.04
BRIDGE_CASH_OUT_COST_PCT = 0.03
UNDERWRITING_FEE = 1995
TERM_MONTHS_GROUND_UP = 18
TERM_MONTHS_DEFAULT = 12

SCORE_BY_BAND = {"Green": 98, "Yellow": 70, "Red": 25}

DEFAULT_ANALYSIS = {
    "narrativeSummary": "Underwriting verification in progress.",
    "isPotentialRural": False,
    "marketAnalysis": {
        "trend": "Stable",
        "comparableSales": "Moderate",
        "domTrend": "45-60 days",
        "arvRealism": "Fair",
    },
    "financialSummary": {
        "expectedProfit": 0,
        "expectedROI": 0,
        "allInCostVsArv": "Calculating...",
    },
    "riskAssessment": {
        "budgetToAivRatio": "N/A",
        "profitMarginAssessment": "Moderate",
        "marketRiskFactors": [],
        "timelineFeasibility": "Standard",
    },
    "redFlags": [],
    "improvementChecklist": ["Verify project scope"],
}
