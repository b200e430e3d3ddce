from __future__ import annotations

import logging
from typing import List, Optional, Tuple

import pandas as pd
from pydantic import BaseModel

from mortgage_scenarios.models import (
    Affordability,
    AssistanceLoan,
    BuydownType,
    BuydownYear,
    DSCRResult,
    IncomeSummary,
    LoanProgram,
    Occupancy,
    Scenario,
)
from mortgage_scenarios.presets import (
    ConcessionCaps,
    MortgageInsuranceTables,
    QualificationLimits,
    RateTier,
)
from mortgage_scenarios.utils import nz, nz_pos, pct_of

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Amortization primitives
# ---------------------------------------------------------------------------


def monthly_payment(principal, annual_rate_pct, term_months):
    """Calculate the fully amortizing monthly payment for a loan.

    ``principal`` is the starting loan amount, ``annual_rate_pct`` is the
    nominal yearly interest rate (e.g. ``6.5`` for 6.5%), and ``term_months``
    is the amortization period.  A zero rate degrades to straight-line
    repayment of principal.
    """

    L = nz(principal)
    r = nz(annual_rate_pct) / 100 / 12
    n = int(nz(term_months))
    if n <= 0:
        return 0.0
    if r == 0:
        return L / n
    return (r * L) / (1 - (1 + r) ** (-n))


def principal_from_payment(payment, annual_rate_pct, term_months):
    """Reverse amortization to find the loan amount for a given payment."""

    P = nz(payment)
    r = nz(annual_rate_pct) / 100 / 12
    n = int(nz(term_months))
    if n <= 0:
        return 0.0
    if r == 0:
        return P * n
    return P * (1 - (1 + r) ** (-n)) / r


def interest_only_payment(principal, annual_rate_pct):
    return nz(principal) * nz(annual_rate_pct) / 100 / 12


def allows_interest_only(program) -> bool:
    """Interest-only is a conventional/jumbo feature; FHA and VA always amortize."""

    return LoanProgram(program) in (LoanProgram.CONVENTIONAL, LoanProgram.JUMBO)


def payment_at_rate(principal, annual_rate_pct, term_months, interest_only=False):
    """P&I at an arbitrary rate, honoring interest-only when requested."""

    if interest_only:
        return interest_only_payment(principal, annual_rate_pct)
    return monthly_payment(principal, annual_rate_pct, term_months)


def amortization_schedule(principal, annual_rate_pct, term_months, horizon_months=None) -> pd.DataFrame:
    """Month-by-month payment split for a level-payment loan."""

    n = int(nz(term_months))
    horizon = min(int(horizon_months or n), n)
    payment = monthly_payment(principal, annual_rate_pct, n)
    r = nz(annual_rate_pct) / 100 / 12
    balance = nz(principal)
    records = []
    for month in range(1, horizon + 1):
        interest = balance * r
        principal_paid = min(payment - interest, balance)
        balance = max(balance - principal_paid, 0.0)
        records.append(
            {
                "month": month,
                "payment": payment,
                "interest": interest,
                "principal": principal_paid,
                "ending_balance": balance,
            }
        )
    if not records:
        return pd.DataFrame(columns=["payment", "interest", "principal", "ending_balance"])
    return pd.DataFrame.from_records(records).set_index("month")


# ---------------------------------------------------------------------------
# Mortgage insurance
# ---------------------------------------------------------------------------


def compute_ltv(purchase_price, loan_amount):
    """Compute loan-to-value percentage; zero price gives zero."""

    return pct_of(loan_amount, purchase_price)


def tiered_rate(ltv, tiers: List[RateTier], default=0.0):
    """First tier whose ``ltv_above`` is exceeded, scanning highest band first."""

    for tier in sorted(tiers, key=lambda t: t.ltv_above, reverse=True):
        if ltv > tier.ltv_above:
            return tier.rate
    return default


def conventional_mi_rate(ltv, tables: MortgageInsuranceTables):
    """Annual private MI percent for a conventional loan at ``ltv``."""

    if ltv <= tables.pmi_trigger_ltv:
        return 0.0
    return tiered_rate(ltv, tables.conventional_tiers)


def fha_mip_factor(ltv, term_months, tables: MortgageInsuranceTables):
    """Retrieve FHA annual MIP factor from lookup table."""

    key = ("<=95" if ltv <= tables.fha_ltv_breakpoint else ">95") + "_" + (
        "<=15" if nz(term_months) <= tables.fha_short_term_months else ">15"
    )
    return tables.fha_annual.get(key, 0.55)


def va_funding_fee_pct(first_use, down_pct, table):
    """Funding fee percentage for VA loans based on usage and down payment."""

    if first_use:
        if down_pct >= 10:
            return table.get("first_10+", 1.25)
        if down_pct >= 5:
            return table.get("first_5_10", 1.50)
        return table.get("first_0_5", 2.15)
    else:
        if down_pct >= 10:
            return table.get("subseq_10+", 1.25)
        if down_pct >= 5:
            return table.get("subseq_5_10", 1.50)
        return table.get("subseq_0_5", 3.30)


def upfront_premium_rate(scenario: Scenario, tables: MortgageInsuranceTables):
    """Upfront MIP / funding fee percent financed into the loan."""

    program = scenario.loan_program
    custom = nz_pos(scenario.upfront_mi_rate)
    if program == LoanProgram.FHA:
        return custom if custom > 0 else tables.fha_upfront_pct
    if program == LoanProgram.VA:
        if custom > 0:
            return custom
        down_pct = pct_of(scenario.down_payment_amount, scenario.purchase_price)
        return va_funding_fee_pct(scenario.va_first_use, down_pct, tables.va_funding_fee)
    return 0.0


class MortgageInsuranceQuote(BaseModel):
    upfront_rate: float = 0.0
    financed_amount: float = 0.0
    base_loan: float = 0.0
    total_loan: float = 0.0
    ltv: float = 0.0
    base_ltv: float = 0.0
    annual_rate: float = 0.0
    monthly: float = 0.0
    manual: bool = False


def resolve_mortgage_insurance(scenario: Scenario, tables: MortgageInsuranceTables) -> MortgageInsuranceQuote:
    """Financed upfront premium plus the ongoing monthly MI for a scenario."""

    price = nz_pos(scenario.purchase_price)
    base_loan = scenario.base_loan_amount
    uf_pct = upfront_premium_rate(scenario, tables)
    financed = base_loan * uf_pct / 100
    total = base_loan + financed
    ltv = compute_ltv(price, total)
    base_ltv = compute_ltv(price, base_loan)

    program = scenario.loan_program
    manual = scenario.manual_mi is not None
    if manual:
        monthly, ann_pct = scenario.manual_mi.resolve(total)
    elif program == LoanProgram.FHA:
        ann_pct = fha_mip_factor(ltv, scenario.term_months, tables)
        monthly = total * ann_pct / 100 / 12
    elif program == LoanProgram.CONVENTIONAL:
        ann_pct = conventional_mi_rate(ltv, tables)
        monthly = total * ann_pct / 100 / 12
    else:
        ann_pct, monthly = 0.0, 0.0

    logger.debug(
        "MI for %s: base=%.2f upfront=%.3f%% total=%.2f ltv=%.3f annual=%.3f%% manual=%s",
        program.value, base_loan, uf_pct, total, ltv, ann_pct, manual,
    )
    return MortgageInsuranceQuote(
        upfront_rate=uf_pct,
        financed_amount=financed,
        base_loan=base_loan,
        total_loan=total,
        ltv=ltv,
        base_ltv=base_ltv,
        annual_rate=ann_pct,
        monthly=monthly,
        manual=manual,
    )


# ---------------------------------------------------------------------------
# Temporary buydowns
# ---------------------------------------------------------------------------

BUYDOWN_REDUCTIONS = {
    BuydownType.TWO_ONE: (2.0, 1.0),
    BuydownType.ONE_ZERO: (1.0,),
    BuydownType.ONE_ONE: (1.0, 1.0),
    BuydownType.THREE_TWO_ONE: (3.0, 2.0, 1.0),
}


def buydown_schedule(
    loan_amount,
    annual_rate_pct,
    term_months,
    buydown_type,
    fixed_monthly_costs=0.0,
    interest_only=False,
) -> Tuple[List[BuydownYear], float]:
    """Year-by-year subsidized payments for a temporary buydown.

    Returns the schedule (every bought-down year followed by the first
    full-rate year) and the total subsidy the seller or lender must fund.
    """

    rate = nz(annual_rate_pct)
    full = payment_at_rate(loan_amount, rate, term_months, interest_only)
    rows: List[BuydownYear] = []
    cost = 0.0
    reductions = BUYDOWN_REDUCTIONS[BuydownType(buydown_type)] + (0.0,)
    for year, drop in enumerate(reductions, start=1):
        year_rate = max(0.0, rate - drop)
        payment = payment_at_rate(loan_amount, year_rate, term_months, interest_only) if drop else full
        subsidy = full - payment
        cost += subsidy * 12
        rows.append(
            BuydownYear(
                year=year,
                rate=year_rate,
                payment=payment,
                subsidy=subsidy,
                full_payment=payment + nz(fixed_monthly_costs),
            )
        )
    return rows, cost


# ---------------------------------------------------------------------------
# Subordinate assistance loans
# ---------------------------------------------------------------------------


def active_assistance_loans(scenario: Scenario) -> List[Optional[AssistanceLoan]]:
    """``[dpa, dpa2]`` with inactive slots as ``None``.

    The second loan only counts when the first one is active.
    """

    first = scenario.dpa if scenario.dpa.active else None
    second = scenario.dpa2 if first is not None and scenario.dpa2.active else None
    return [first, second]


def assistance_payment(loan: Optional[AssistanceLoan], default_term_months=120):
    """Monthly payment on an assistance loan; deferred (silent) seconds pay nothing."""

    if loan is None or loan.is_deferred:
        return 0.0
    term = int(nz(loan.term_months)) or default_term_months
    return monthly_payment(nz_pos(loan.amount), nz_pos(loan.rate), term)


# ---------------------------------------------------------------------------
# Qualification
# ---------------------------------------------------------------------------


def qualifying_income(scenario: Scenario, rental_factor=0.75) -> IncomeSummary:
    """Gross monthly income used for DTI, rental haircut for vacancy."""

    effective_rental = nz_pos(scenario.income.rental) * rental_factor
    if scenario.dscr_mode:
        return IncomeSummary(effective_rental=effective_rental, total=0.0)
    return IncomeSummary(
        effective_rental=effective_rental,
        total=scenario.income.borrower_total + effective_rental,
    )


def dti(housing_payment, other_debts, total_income):
    """Return front-end and back-end debt-to-income ratios as percents."""

    inc = nz(total_income)
    if inc <= 0:
        return 0.0, 0.0
    fe = 100.0 * nz(housing_payment) / inc
    be = 100.0 * (nz(housing_payment) + nz(other_debts)) / inc
    return fe, be


def dscr(gross_rent, debt_service, minimum=1.0) -> DSCRResult:
    """Debt service coverage: gross monthly rent over full PITIA."""

    ds = nz(debt_service)
    ratio = nz(gross_rent) / ds if ds > 0 else 0.0
    return DSCRResult(
        ratio=ratio,
        gross_rental_income=nz(gross_rent),
        debt_service=ds,
        minimum=minimum,
        passes=ratio >= minimum,
    )


def dti_passes(front_end, back_end, total_income, front_limit, back_limit) -> bool:
    if nz(total_income) <= 0:
        return False
    return front_end <= front_limit and back_end <= back_limit


def program_dti_limits(program, limits: QualificationLimits) -> Tuple[float, float]:
    """Reference (front, back) limits for a program: FHA/VA vs conventional/jumbo."""

    if LoanProgram(program) in (LoanProgram.FHA, LoanProgram.VA):
        return limits.fha_front, limits.fha_back
    return limits.conv_front, limits.conv_back


def max_affordable_payment(total_income, other_debts, front_pct, back_pct):
    """Maximum housing payment given DTI targets.

    Returns the front-end ceiling, the back-end ceiling net of debts, and the
    binding (lower) of the two.
    """

    inc = nz(total_income)
    fe_max = max(0.0, inc * nz(front_pct) / 100)
    be_max = max(0.0, inc * nz(back_pct) / 100 - nz(other_debts))
    return fe_max, be_max, min(fe_max, be_max)


def affordability(
    total_income,
    other_debts,
    front_pct,
    back_pct,
    current_payment,
    purchase_price,
    down_payment_pct,
) -> Tuple[Affordability, List[str]]:
    """Scale the current scenario up or down to the most a borrower can carry.

    Uses the ratio method: price and loan move in proportion to the housing
    payment the DTI limits allow.  Returns the figures and the arithmetic as
    display lines.
    """

    inc = nz(total_income)
    if inc <= 0:
        return Affordability(), []
    fe_max, be_max, max_pmt = max_affordable_payment(inc, other_debts, front_pct, back_pct)
    limiting = "Front-End" if fe_max < be_max else "Back-End"
    ratio = 0.0
    max_price = 0.0
    max_loan = 0.0
    if nz(current_payment) > 0 and nz(purchase_price) > 0:
        ratio = max_pmt / current_payment
        max_price = purchase_price * ratio
        max_loan = max_price * (1 - nz(down_payment_pct) / 100)
    lines = [
        f"Total Income: ${inc:,.2f}",
        "Max Housing Payment Logic:",
        f" • Front-End Limit ({front_pct}%): ${fe_max:,.0f}",
        f" • Back-End Limit ({back_pct}%): ${inc * back_pct / 100:,.0f} - Debts (${nz(other_debts):,.0f}) = ${be_max:,.0f}",
        f" • Limiting Factor: {limiting} (Lowest of above)",
        f" • Result: ${max_pmt:,.0f} / month",
        "Max Price Logic (Ratio Method):",
        f" • Current Pmt: ${nz(current_payment):,.0f}",
        f" • Ratio (Max / Current): {ratio:.4f}",
        f" • Max Price (${nz(purchase_price):,.0f} * {ratio:.4f}): ${max_price:,.0f}",
        f" • Max Loan (${max_price:,.0f} - {nz(down_payment_pct)}% Down): ${max_loan:,.0f}",
    ]
    return Affordability(max_housing_payment=max_pmt, max_price=max_price, max_loan=max_loan), lines


def dti_lines(front_end, back_end, front_limit, back_limit, passes) -> List[str]:
    verdict = "PASS" if passes else "FAIL"
    return [
        f"Front-End DTI: {front_end:.2f}% (limit {front_limit}%)",
        f"Back-End DTI: {back_end:.2f}% (limit {back_limit}%)",
        f"Result: {verdict}",
    ]


# ---------------------------------------------------------------------------
# Seller concessions
# ---------------------------------------------------------------------------


def max_concession_percent(program, occupancy, ltv, caps: ConcessionCaps):
    """Maximum interested-party contribution as a percent of price."""

    if Occupancy(occupancy) == Occupancy.INVESTMENT:
        return caps.investment
    prog = LoanProgram(program)
    if prog == LoanProgram.FHA:
        return caps.fha
    if prog == LoanProgram.VA:
        return caps.va
    if prog == LoanProgram.JUMBO and caps.jumbo is not None:
        return caps.jumbo
    return tiered_rate(ltv, caps.conventional_tiers, default=caps.conventional_floor)
