from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from mortgage_scenarios.presets import DEFAULT_CLOSING_COSTS
from mortgage_scenarios.utils import nz_pos, pct_of, round_money, round_pct


class LoanProgram(str, Enum):
    CONVENTIONAL = "Conventional"
    FHA = "FHA"
    VA = "VA"
    JUMBO = "Jumbo"


class Occupancy(str, Enum):
    PRIMARY = "Primary Residence"
    SECOND_HOME = "Second Home"
    INVESTMENT = "Investment Property"


class TransactionType(str, Enum):
    PURCHASE = "Purchase"
    REFINANCE = "Refinance"


class BuydownType(str, Enum):
    TWO_ONE = "2-1"
    ONE_ZERO = "1-0"
    ONE_ONE = "1-1"
    THREE_TWO_ONE = "3-2-1"


class CostCategory(str, Enum):
    LENDER = "Lender Fees"
    THIRD_PARTY = "Third Party Fees"
    TITLE_GOVERNMENT = "Title & Government"
    ESCROWS_PREPAIDS = "Escrows/Prepaids"
    OTHER = "Other Fees"


class CreditMode(str, Enum):
    FIXED = "fixed"
    PERCENT = "percent"


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


class ClosingCostItem(BaseModel):
    """One line on the fee sheet.

    ``is_fixed`` items are dollar amounts; otherwise ``amount`` is a percent
    of the total loan amount.  ``days`` is only meaningful for prepaid
    interest and ``months`` for reserve/prepay items.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    category: CostCategory = CostCategory.OTHER
    name: str = ""
    amount: float = 0.0
    is_fixed: bool = True
    days: Optional[float] = None
    months: Optional[float] = None


class BuydownConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    active: bool = False
    type: BuydownType = BuydownType.TWO_ONE


class AssistanceLoan(BaseModel):
    """A subordinate (down payment assistance) loan.

    ``amount`` and ``percent`` are two views of the same figure against the
    purchase price; use :meth:`with_amount` / :meth:`with_percent` so they
    never drift apart.
    """

    model_config = ConfigDict(frozen=True)

    active: bool = False
    amount: float = 0.0
    percent: float = 0.0
    rate: float = 7.5
    term_months: int = 120
    is_deferred: bool = False

    def with_amount(self, amount, purchase_price) -> "AssistanceLoan":
        amt = nz_pos(amount)
        return self.model_copy(update={"amount": amt, "percent": pct_of(amt, purchase_price)})

    def with_percent(self, percent, purchase_price) -> "AssistanceLoan":
        pct = nz_pos(percent)
        amt = round_money(nz_pos(purchase_price) * pct / 100)
        return self.model_copy(update={"amount": amt, "percent": pct})


class IncomeConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    borrower1: float = 0.0
    borrower2: float = 0.0
    rental: float = 0.0
    other: float = 0.0

    @property
    def borrower_total(self) -> float:
        return nz_pos(self.borrower1) + nz_pos(self.borrower2) + nz_pos(self.other)


class MortgageInsuranceOverride(BaseModel):
    """Manually entered mortgage insurance.

    The officer may type either the monthly dollars or the annual rate.
    ``basis`` records which one was typed; the other is derived from the
    total loan amount each time the scenario is calculated.
    """

    model_config = ConfigDict(frozen=True)

    basis: Literal["monthly", "rate"] = "monthly"
    monthly_amount: float = 0.0
    annual_rate: float = 0.0

    def resolve(self, total_loan_amount):
        """Return ``(monthly_dollars, annual_rate_pct)`` for a loan amount."""

        loan = nz_pos(total_loan_amount)
        if self.basis == "rate":
            rate = nz_pos(self.annual_rate)
            return loan * rate / 100 / 12, rate
        monthly = nz_pos(self.monthly_amount)
        rate = monthly * 12 / loan * 100 if loan > 0 else 0.0
        return monthly, rate


def _default_closing_costs() -> List[ClosingCostItem]:
    return [ClosingCostItem(**row) for row in DEFAULT_CLOSING_COSTS]


class Scenario(BaseModel):
    """Everything the engine needs to price one loan scenario.

    Percent fields are whole-number scaled (``6.5`` means 6.5%).  Treat an
    instance as a value: the ``with_*`` helpers return an updated copy and
    keep paired fields (amount/percent) consistent.
    """

    model_config = ConfigDict(frozen=True)

    transaction_type: TransactionType = TransactionType.PURCHASE
    purchase_price: float = 500000.0
    down_payment_amount: float = 25000.0
    down_payment_percent: float = 5.0
    payoff_balance: float = 0.0

    loan_program: LoanProgram = LoanProgram.CONVENTIONAL
    occupancy: Occupancy = Occupancy.PRIMARY
    units: int = Field(default=1, ge=1, le=4)
    interest_rate: float = 6.5
    term_months: int = 360
    interest_only: bool = False
    credit_score: int = 740

    property_tax_yearly: float = 3000.0
    insurance_yearly: float = 1000.0
    hoa_monthly: float = 0.0

    manual_mi: Optional[MortgageInsuranceOverride] = None
    upfront_mi_rate: float = 0.0
    va_first_use: bool = True

    earnest_money: float = 0.0
    seller_concessions: float = 0.0
    seller_concessions_enabled: bool = False
    lender_credits: float = 0.0
    lender_credits_mode: CreditMode = CreditMode.FIXED
    lender_credits_enabled: bool = False

    closing_costs: List[ClosingCostItem] = Field(default_factory=_default_closing_costs)
    settlement_date: Optional[date] = None

    buydown: BuydownConfig = Field(default_factory=BuydownConfig)
    dpa: AssistanceLoan = Field(default_factory=AssistanceLoan)
    dpa2: AssistanceLoan = Field(default_factory=AssistanceLoan)

    income: IncomeConfig = Field(default_factory=IncomeConfig)
    monthly_debts: float = 0.0
    is_dscr_loan: bool = False

    # -- paired fields ----------------------------------------------------

    def with_purchase_price(self, price) -> "Scenario":
        """Change the price; the down payment percent stays authoritative."""

        p = nz_pos(price)
        pct = round_pct(self.down_payment_percent)
        return self.model_copy(
            update={
                "purchase_price": p,
                "down_payment_percent": pct,
                "down_payment_amount": round_money(p * pct / 100),
                "dpa": self.dpa.with_amount(self.dpa.amount, p),
                "dpa2": self.dpa2.with_amount(self.dpa2.amount, p),
            }
        )

    def with_down_payment_percent(self, percent) -> "Scenario":
        pct = round_pct(nz_pos(percent))
        return self.model_copy(
            update={
                "down_payment_percent": pct,
                "down_payment_amount": round_money(nz_pos(self.purchase_price) * pct / 100),
            }
        )

    def with_down_payment_amount(self, amount) -> "Scenario":
        amt = nz_pos(amount)
        return self.model_copy(
            update={
                "down_payment_amount": amt,
                "down_payment_percent": round_pct(pct_of(amt, self.purchase_price)),
            }
        )

    def with_assistance_amount(self, index: int, amount) -> "Scenario":
        key = _dpa_key(index)
        loan = getattr(self, key).with_amount(amount, self.purchase_price)
        return self.model_copy(update={key: loan})

    def with_assistance_percent(self, index: int, percent) -> "Scenario":
        key = _dpa_key(index)
        loan = getattr(self, key).with_percent(percent, self.purchase_price)
        return self.model_copy(update={key: loan})

    def with_manual_mi_monthly(self, dollars) -> "Scenario":
        override = MortgageInsuranceOverride(basis="monthly", monthly_amount=nz_pos(dollars))
        return self.model_copy(update={"manual_mi": override})

    def with_manual_mi_rate(self, annual_rate, total_loan_amount) -> "Scenario":
        rate = nz_pos(annual_rate)
        override = MortgageInsuranceOverride(
            basis="rate",
            annual_rate=rate,
            monthly_amount=nz_pos(total_loan_amount) * rate / 100 / 12,
        )
        return self.model_copy(update={"manual_mi": override})

    def without_manual_mi(self) -> "Scenario":
        return self.model_copy(update={"manual_mi": None})

    def with_program(self, program) -> "Scenario":
        """Switch loan program, resetting program-specific defaults."""

        prog = LoanProgram(program)
        update = {
            "loan_program": prog,
            # 0 means the program table decides the upfront premium
            "upfront_mi_rate": 0.0,
        }
        if prog in (LoanProgram.FHA, LoanProgram.VA):
            update["interest_only"] = False
        return self.model_copy(update=update)

    # -- derived views ----------------------------------------------------

    @property
    def is_purchase(self) -> bool:
        return self.transaction_type == TransactionType.PURCHASE

    @property
    def is_investment(self) -> bool:
        return self.occupancy == Occupancy.INVESTMENT

    @property
    def dscr_mode(self) -> bool:
        return bool(self.is_dscr_loan)

    @property
    def base_loan_amount(self) -> float:
        return max(0.0, nz_pos(self.purchase_price) - nz_pos(self.down_payment_amount))


def _dpa_key(index: int) -> str:
    if index == 1:
        return "dpa"
    if index == 2:
        return "dpa2"
    raise ValueError(f"assistance loan index must be 1 or 2, got {index!r}")


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------


class BuydownYear(BaseModel):
    year: int
    rate: float
    payment: float
    subsidy: float
    full_payment: float


class DTIRatios(BaseModel):
    front_end: float = 0.0
    back_end: float = 0.0


class DSCRResult(BaseModel):
    ratio: float = 0.0
    gross_rental_income: float = 0.0
    debt_service: float = 0.0
    minimum: float = 1.0
    passes: bool = False


class Qualification(BaseModel):
    mode: Literal["DTI", "DSCR"] = "DTI"
    passes: bool = False
    front_end_limit: float = 0.0
    back_end_limit: float = 0.0


class IncomeSummary(BaseModel):
    effective_rental: float = 0.0
    total: float = 0.0


class Affordability(BaseModel):
    max_housing_payment: float = 0.0
    max_price: float = 0.0
    max_loan: float = 0.0


class MathBreakdown(BaseModel):
    conv: List[str] = Field(default_factory=list)
    fha: List[str] = Field(default_factory=list)
    conv_pass: bool = False
    fha_pass: bool = False


class ResultWarnings(BaseModel):
    excess_concessions: bool = False
    unused_credits: bool = False
    excess_dpa: bool = False

    def active(self) -> List[str]:
        return [k for k, v in self.model_dump().items() if v]


class CalculatedResults(BaseModel):
    """Fully derived output of :func:`mortgage_scenarios.calculate_scenario`.

    Dollar figures are rounded to the cent; ratios and percents are not.
    """

    base_loan_amount: float
    financed_mip: float
    upfront_mi_rate: float
    total_loan_amount: float
    ltv: float
    base_ltv: float

    monthly_principal_and_interest: float
    effective_principal_and_interest: float
    monthly_tax: float
    monthly_insurance: float
    monthly_mi: float
    mi_rate_percent: float
    monthly_hoa: float
    monthly_dpa_payment: float
    monthly_dpa2_payment: float
    base_monthly_payment: float
    total_monthly_payment: float

    buydown_schedule: List[BuydownYear] = Field(default_factory=list)
    buydown_cost: float = 0.0

    dti: DTIRatios = Field(default_factory=DTIRatios)
    dscr: Optional[DSCRResult] = None
    qualification: Qualification = Field(default_factory=Qualification)
    income: IncomeSummary = Field(default_factory=IncomeSummary)
    affordability_conv: Affordability = Field(default_factory=Affordability)
    affordability_fha: Affordability = Field(default_factory=Affordability)
    math_breakdown: MathBreakdown = Field(default_factory=MathBreakdown)

    closing_cost_items: Dict[str, float] = Field(default_factory=dict)
    closing_cost_subtotals: Dict[str, float] = Field(default_factory=dict)
    prepaid_interest: float = 0.0
    prepaid_interest_days: float = 0.0
    total_closing_costs: float = 0.0
    net_closing_costs: float = 0.0
    unused_credits: float = 0.0

    seller_concessions_amount: float = 0.0
    effective_seller_concessions: float = 0.0
    excess_concessions: float = 0.0
    seller_concessions_percent: float = 0.0
    max_concessions_percent: float = 0.0
    max_concessions_allowed: float = 0.0
    lender_credits_amount: float = 0.0
    warnings: ResultWarnings = Field(default_factory=ResultWarnings)

    earnest_money: float = 0.0
    down_payment_required: float = 0.0
    dpa_funding: float = 0.0
    total_funds_required: float = 0.0
    cash_to_close: float = 0.0
    refund_due: float = 0.0
    is_refund: bool = False
