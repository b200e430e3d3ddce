"""Default rate tables and guideline limits.

Every table here is a starting point that callers may override per user or
per branch; nothing in the calculators hardcodes these figures.
"""
from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

DISCLAIMER = (
    "Figures are estimates built from common agency guidelines (program-aware MI/MIP/funding "
    "fees, 75% rental income, seller concession caps). AUS findings, investor guides, lender "
    "overlays and underwriter discretion prevail."
)


# Annual FHA MIP factors keyed by LTV band and term (<=15 / >15 years).
FHA_TABLES = {
    "ufmip_pct": 1.75,
    "annual_table": {"<=95_<=15": 0.15, "<=95_>15": 0.50, ">95_<=15": 0.40, ">95_>15": 0.55},
}
VA_TABLE = {
    "first_0_5": 2.15,
    "first_5_10": 1.50,
    "first_10+": 1.25,
    "subseq_0_5": 3.30,
    "subseq_5_10": 1.50,
    "subseq_10+": 1.25,
}

DEFAULT_CLOSING_COSTS = [
    {"id": "discount-points", "category": "Lender Fees", "name": "Discount Points", "amount": 0.0, "is_fixed": False},
    {"id": "underwriting", "category": "Lender Fees", "name": "Underwriting Fee", "amount": 995.0},
    {"id": "processing", "category": "Lender Fees", "name": "Administration Fee", "amount": 795.0},
    {"id": "tax-service", "category": "Lender Fees", "name": "Tax Service Fee", "amount": 71.0},
    {"id": "wire-transfer", "category": "Lender Fees", "name": "Wire Transfer Fee", "amount": 23.0},
    {"id": "appraisal", "category": "Third Party Fees", "name": "Appraisal", "amount": 650.0},
    {"id": "credit-report", "category": "Third Party Fees", "name": "Credit Report", "amount": 250.0},
    {"id": "flood-cert", "category": "Third Party Fees", "name": "Flood Certification", "amount": 9.0},
    {"id": "closing-protection-letter", "category": "Title & Government", "name": "Closing Protection Letter Fee", "amount": 25.0},
    {"id": "endorsement-fee", "category": "Title & Government", "name": "Endorsement Fee", "amount": 55.0},
    {"id": "e-recording-fee", "category": "Title & Government", "name": "E-recording Fee", "amount": 10.0},
    {"id": "recording-fee", "category": "Title & Government", "name": "Recording Fee", "amount": 80.0},
    {"id": "settlement-fee", "category": "Title & Government", "name": "Settlement Fee", "amount": 395.0},
    # 0 means "use the banded schedule"
    {"id": "title-insurance", "category": "Title & Government", "name": "Lenders Title Insurance", "amount": 0.0},
    {"id": "prepaid-interest", "category": "Escrows/Prepaids", "name": "Prepaid Interest", "amount": 0.0, "days": 15},
    {"id": "prepaid-insurance", "category": "Escrows/Prepaids", "name": "Homeowners Insurance Premium", "amount": 0.0, "months": 12},
    {"id": "tax-reserves", "category": "Escrows/Prepaids", "name": "Property Tax Reserves", "amount": 0.0, "months": 3},
    {"id": "insurance-reserves", "category": "Escrows/Prepaids", "name": "Homeowners Insurance Reserves", "amount": 0.0, "months": 2},
    {"id": "buyers-agent-commission", "category": "Other Fees", "name": "Buyer's Agent Commission", "amount": 0.0, "is_fixed": False},
    {"id": "realtor-admin", "category": "Other Fees", "name": "Realtor Admin Fee", "amount": 495.0},
    {"id": "hoa-transfer", "category": "Other Fees", "name": "HOA Transfer Fee", "amount": 0.0},
    {"id": "hoa-prepay", "category": "Other Fees", "name": "HOA Monthly Dues (Prepay)", "amount": 0.0, "months": 1},
    {"id": "misc-1", "category": "Other Fees", "name": "Other Fee 1", "amount": 0.0},
    {"id": "misc-2", "category": "Other Fees", "name": "Other Fee 2", "amount": 0.0},
    {"id": "misc-3", "category": "Other Fees", "name": "Other Fee 3", "amount": 0.0},
    {"id": "misc-4", "category": "Other Fees", "name": "Other Fee 4", "amount": 0.0},
]


class RateTier(BaseModel):
    """Rate applied when LTV is strictly above ``ltv_above``."""

    ltv_above: float
    rate: float


class MortgageInsuranceTables(BaseModel):
    pmi_trigger_ltv: float = 80.0
    # Highest band first; rates are annual percent of the loan amount.
    conventional_tiers: List[RateTier] = Field(
        default_factory=lambda: [
            RateTier(ltv_above=95.0, rate=0.95),
            RateTier(ltv_above=90.0, rate=0.75),
            RateTier(ltv_above=85.0, rate=0.48),
            RateTier(ltv_above=80.0, rate=0.28),
        ]
    )
    fha_upfront_pct: float = FHA_TABLES["ufmip_pct"]
    fha_ltv_breakpoint: float = 95.0
    fha_short_term_months: int = 180
    fha_annual: Dict[str, float] = Field(default_factory=lambda: dict(FHA_TABLES["annual_table"]))
    va_funding_fee: Dict[str, float] = Field(default_factory=lambda: dict(VA_TABLE))


class TitleBand(BaseModel):
    upper: float
    rate: float


class TitleInsuranceSchedule(BaseModel):
    """Lender's title premium: a marginal rate per band, then a flat add-on.

    Rates are percent of the slice of loan amount falling inside each band.
    """

    bands: List[TitleBand] = Field(
        default_factory=lambda: [
            TitleBand(upper=250000.0, rate=0.37),
            TitleBand(upper=550000.0, rate=0.30),
        ]
    )
    above_top_flat: float = 150.0


class ConcessionCaps(BaseModel):
    """Maximum seller concessions as a percent of price."""

    investment: float = 2.0
    fha: float = 6.0
    va: float = 4.0
    # None: Jumbo follows the conventional tiers.
    jumbo: Optional[float] = None
    # Conventional (and Jumbo by default) scale down as LTV rises; highest band first.
    conventional_tiers: List[RateTier] = Field(
        default_factory=lambda: [
            RateTier(ltv_above=90.0, rate=3.0),
            RateTier(ltv_above=75.0, rate=6.0),
        ]
    )
    conventional_floor: float = 9.0


class QualificationLimits(BaseModel):
    """Reference DTI limits for the conventional/FHA what-if comparison."""

    conv_front: float = 46.99
    conv_back: float = 49.99
    fha_front: float = 46.99
    fha_back: float = 57.00
    rental_factor: float = 0.75
    dscr_minimum: float = 1.0


class EngineConfig(BaseModel):
    mi: MortgageInsuranceTables = Field(default_factory=MortgageInsuranceTables)
    title: TitleInsuranceSchedule = Field(default_factory=TitleInsuranceSchedule)
    concessions: ConcessionCaps = Field(default_factory=ConcessionCaps)
    qualification: QualificationLimits = Field(default_factory=QualificationLimits)
    default_term_months: int = 360
    default_dpa_term_months: int = 120
