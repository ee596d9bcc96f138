"""Enrichment service integration.

The deterministic quote never depends on this module: any failure here is
logged and replaced by ``default_analysis()``.
"""

from __future__ import annotations

import copy
import json
import logging
from typing import Optional

import requests

from flipquote import config
from flipquote.calculators import classify_tier
from flipquote.models import AnalysisResult, DealRecord
from flipquote.presets import DEFAULT_ANALYSIS

logger = logging.getLogger(__name__)

_STR = {"type": "STRING"}
_STR_LIST = {"type": "ARRAY", "items": _STR}

RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "narrativeSummary": _STR,
        "isPotentialRural": {"type": "BOOLEAN"},
        "marketAnalysis": {
            "type": "OBJECT",
            "properties": {
                "trend": _STR,
                "comparableSales": _STR,
                "domTrend": _STR,
                "arvRealism": _STR,
            },
            "required": ["trend", "comparableSales", "domTrend", "arvRealism"],
        },
        "financialSummary": {
            "type": "OBJECT",
            "properties": {
                "expectedProfit": {"type": "NUMBER"},
                "expectedROI": {"type": "NUMBER"},
                "allInCostVsArv": _STR,
            },
            "required": ["expectedProfit", "expectedROI", "allInCostVsArv"],
        },
        "riskAssessment": {
            "type": "OBJECT",
            "properties": {
                "budgetToAivRatio": _STR,
                "profitMarginAssessment": _STR,
                "marketRiskFactors": _STR_LIST,
                "timelineFeasibility": _STR,
            },
            "required": [
                "budgetToAivRatio",
                "profitMarginAssessment",
                "marketRiskFactors",
                "timelineFeasibility",
            ],
        },
        "redFlags": _STR_LIST,
        "improvementChecklist": _STR_LIST,
    },
    "required": [
        "narrativeSummary",
        "isPotentialRural",
        "marketAnalysis",
        "financialSummary",
        "riskAssessment",
        "redFlags",
        "improvementChecklist",
    ],
}


_gemini_session: Optional[requests.Session] = None


def _shared_session() -> requests.Session:
    """One pooled session reused across quotes."""
    global _gemini_session
    if _gemini_session is None:
        _gemini_session = requests.Session()
    return _gemini_session


def default_analysis() -> AnalysisResult:
    """Fixed payload used whenever the enrichment service is unavailable."""
    return AnalysisResult.model_validate(copy.deepcopy(DEFAULT_ANALYSIS))


def build_prompt(deal: DealRecord, score: int, band: str, ltv: float) -> str:
    tier = classify_tier(deal.experience_range, deal.experience_value_range).value
    basis = deal.purchase_price or deal.as_is_value
    rehab = deal.rehab_budget or deal.construction_costs
    arv = deal.estimated_arv
    asset = deal.asset_type.value
    return f"""
Persona: Senior Real Estate Credit Underwriter.
Property: {deal.zip_code} in city {deal.city}, state {deal.property_state}.
Asset Type: {asset}.
Experience Tier: {tier}.
Preliminary Score: {score} ({band} band), LTV {ltv * 100:.1f}%.

DEAL NUMBERS:
- Basis: ${basis:,.0f}
- Rehab: ${rehab:,.0f}
- ARV: ${arv:,.0f}

TASK:
1. MARKET ANALYSIS: Search for {asset} trends in zip code {deal.zip_code}.
2. RURAL CHECK: Determine if this zip code is considered a "Rural Area" (low density, outside major MSA).
3. FINANCIAL SUMMARY: Calculate Expected Profit.
4. RED FLAGS: Warn about geographic risks or unrealistic budgets.

Respond with a single JSON object matching the response schema.
"""


def build_payload(prompt: str) -> dict:
    return {
        "contents": [{"role": "user", "parts": [{"text": prompt}]}],
        "tools": [{"google_search": {}}],
        "generationConfig": {
            "temperature": config.ENRICHMENT_TEMPERATURE,
            "responseMimeType": "application/json",
            "responseSchema": RESPONSE_SCHEMA,
        },
    }


def parse_response(body: dict) -> AnalysisResult:
    candidates = body.get("candidates", [])
    if not candidates:
        reason = body.get("promptFeedback", {}).get("blockReason", "Unknown")
        raise ValueError(f"Gemini returned no candidates: {reason}")

    parts = candidates[0].get("content", {}).get("parts", [])
    text = "".join(p.get("text", "") for p in parts).strip()
    if not text:
        return default_analysis()

    analysis = AnalysisResult.model_validate(json.loads(text))
    grounding = candidates[0].get("groundingMetadata", {}).get("groundingChunks")
    return analysis.model_copy(update={"grounding_sources": grounding})


def analyze_deal_with_ai(
    deal: DealRecord,
    score: int,
    band: str,
    ltv: float,
    api_key: Optional[str] = None,
    model: Optional[str] = None,
    session: Optional[requests.Session] = None,
    timeout: Optional[float] = None,
) -> AnalysisResult:
    """Ask the model for market commentary on a quoted deal.

    Single attempt, no retries.  Missing credentials, transport errors,
    blocked prompts and malformed JSON all yield ``default_analysis()``.
    """

    api_key = api_key or config.GEMINI_API_KEY
    if not api_key:
        logger.info("GEMINI_API_KEY not configured; using default analysis")
        return default_analysis()

    model = model or config.GEMINI_MODEL
    url = f"{config.GEMINI_API_BASE_URL}/{model}:generateContent"
    payload = build_payload(build_prompt(deal, score, band, ltv))
    http = session or _shared_session()

    try:
        response = http.post(
            url,
            params={"key": api_key},
            headers={"Content-Type": "application/json"},
            json=payload,
            timeout=timeout or config.ENRICHMENT_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
        return parse_response(response.json())
    except (requests.RequestException, ValueError, KeyError, TypeError, AttributeError) as e:
        logger.warning("AI analysis failed for %s; using default analysis: %s", model, e)
        return default_analysis()
