"""Compose the calculators into a complete result set for one scenario."""
from __future__ import annotations

import logging
from typing import Optional

from mortgage_scenarios.calculators import (
    active_assistance_loans,
    affordability,
    allows_interest_only,
    assistance_payment,
    buydown_schedule,
    dscr,
    dti,
    dti_lines,
    dti_passes,
    max_concession_percent,
    payment_at_rate,
    program_dti_limits,
    qualifying_income,
    resolve_mortgage_insurance,
)
from mortgage_scenarios.closing_costs import CostContext, aggregate_closing_costs
from mortgage_scenarios.models import (
    Affordability,
    BuydownYear,
    CalculatedResults,
    CreditMode,
    DTIRatios,
    MathBreakdown,
    Qualification,
    ResultWarnings,
    Scenario,
)
from mortgage_scenarios.presets import EngineConfig
from mortgage_scenarios.utils import nz, nz_pos, pct_of, round_money

logger = logging.getLogger(__name__)


def lender_credit_amount(scenario: Scenario, total_loan_amount) -> float:
    """Dollar value of lender credits, fixed or as a percent of the total loan."""

    if not scenario.lender_credits_enabled:
        return 0.0
    val = nz_pos(scenario.lender_credits)
    if scenario.lender_credits_mode == CreditMode.PERCENT:
        return nz_pos(total_loan_amount) * val / 100
    return val


def calculate_scenario(scenario: Scenario, config: Optional[EngineConfig] = None) -> CalculatedResults:
    """Run every stage of the engine and return a fully populated result.

    Pure: the scenario and config are only read.  Degenerate inputs (zero
    price, zero income, zero rate) produce zeros rather than errors.
    """

    config = config or EngineConfig()
    m = round_money
    program = scenario.loan_program
    price = nz_pos(scenario.purchase_price)
    rate = nz_pos(scenario.interest_rate)
    term = int(nz(scenario.term_months)) or config.default_term_months
    interest_only = bool(scenario.interest_only) and allows_interest_only(program)

    # Loan amounts and mortgage insurance
    mi = resolve_mortgage_insurance(scenario, config.mi)
    total_loan = mi.total_loan

    # Monthly payment
    pi = payment_at_rate(total_loan, rate, term, interest_only)
    monthly_tax = nz_pos(scenario.property_tax_yearly) / 12
    monthly_ins = nz_pos(scenario.insurance_yearly) / 12
    monthly_hoa = nz_pos(scenario.hoa_monthly)
    dpa, dpa2 = active_assistance_loans(scenario)
    dpa_pmt = assistance_payment(dpa, config.default_dpa_term_months)
    dpa2_pmt = assistance_payment(dpa2, config.default_dpa_term_months)
    fixed_costs = monthly_tax + monthly_ins + mi.monthly + monthly_hoa + dpa_pmt + dpa2_pmt
    base_payment = pi + fixed_costs

    schedule, buydown_cost = [], 0.0
    if scenario.buydown.active:
        schedule, buydown_cost = buydown_schedule(
            total_loan, rate, term, scenario.buydown.type, fixed_costs, interest_only
        )
    year_one_subsidy = schedule[0].subsidy if schedule else 0.0
    total_payment = base_payment - year_one_subsidy

    # Closing costs, concessions and credits
    ctx = CostContext(
        total_loan_amount=total_loan,
        interest_rate=rate,
        property_tax_yearly=nz_pos(scenario.property_tax_yearly),
        insurance_yearly=nz_pos(scenario.insurance_yearly),
        hoa_monthly=monthly_hoa,
        settlement_date=scenario.settlement_date,
    )
    costs = aggregate_closing_costs(scenario.closing_costs, ctx, config.title)
    total_closing = costs.total + buydown_cost

    concessions_on = scenario.is_purchase and scenario.seller_concessions_enabled
    requested = nz_pos(scenario.seller_concessions) if concessions_on else 0.0
    max_pct = max_concession_percent(program, scenario.occupancy, mi.ltv, config.concessions)
    max_allowed = price * max_pct / 100
    effective = min(requested, max_allowed)
    excess = requested - effective
    if excess > 0:
        logger.debug("Seller concessions %.2f clipped to cap %.2f (%.2f%%)", requested, max_allowed, max_pct)
    lender_credits = lender_credit_amount(scenario, total_loan)
    raw_net = total_closing - (effective + lender_credits)
    net_closing = max(0.0, raw_net)
    unused = max(0.0, -raw_net)

    # Qualification
    limits = config.qualification
    income = qualifying_income(scenario, limits.rental_factor)
    debts = 0.0 if scenario.dscr_mode else nz_pos(scenario.monthly_debts)
    fe, be = dti(base_payment, debts, income.total)
    dscr_result = None
    if scenario.is_investment or scenario.dscr_mode:
        dscr_result = dscr(nz_pos(scenario.income.rental), base_payment, limits.dscr_minimum)

    if scenario.dscr_mode:
        qualification = Qualification(mode="DSCR", passes=dscr_result.passes)
        breakdown = MathBreakdown(
            conv=["DSCR loan: borrower income and debts are not used."],
            fha=["DSCR loan: borrower income and debts are not used."],
        )
        afford_conv, afford_fha = Affordability(), Affordability()
    else:
        prog_front, prog_back = program_dti_limits(program, limits)
        qualification = Qualification(
            mode="DTI",
            passes=dti_passes(fe, be, income.total, prog_front, prog_back),
            front_end_limit=prog_front,
            back_end_limit=prog_back,
        )
        conv_pass = dti_passes(fe, be, income.total, limits.conv_front, limits.conv_back)
        fha_pass = dti_passes(fe, be, income.total, limits.fha_front, limits.fha_back)
        afford_conv, conv_math = affordability(
            income.total, debts, limits.conv_front, limits.conv_back,
            base_payment, price, scenario.down_payment_percent,
        )
        afford_fha, fha_math = affordability(
            income.total, debts, limits.fha_front, limits.fha_back,
            base_payment, price, scenario.down_payment_percent,
        )
        breakdown = MathBreakdown(
            conv=dti_lines(fe, be, limits.conv_front, limits.conv_back, conv_pass) + conv_math,
            fha=dti_lines(fe, be, limits.fha_front, limits.fha_back, fha_pass) + fha_math,
            conv_pass=conv_pass,
            fha_pass=fha_pass,
        )

    # Cash to close
    if scenario.is_purchase:
        down = nz_pos(scenario.down_payment_amount)
        earnest = nz_pos(scenario.earnest_money)
        dpa_funding = sum(nz_pos(loan.amount) for loan in (dpa, dpa2) if loan is not None)
        funds_required = down + net_closing - dpa_funding
        cash_to_close = funds_required - earnest
        excess_dpa = dpa_funding > down + net_closing
    else:
        down = earnest = dpa_funding = 0.0
        funds_required = nz_pos(scenario.payoff_balance) - mi.base_loan + net_closing
        cash_to_close = funds_required
        excess_dpa = False
    cash_to_close = m(cash_to_close)

    logger.debug(
        "Scenario %s/%s: total loan %.2f, payment %.2f, closing %.2f, cash to close %.2f",
        scenario.transaction_type.value, program.value, total_loan, base_payment, total_closing, cash_to_close,
    )

    return CalculatedResults(
        base_loan_amount=m(mi.base_loan),
        financed_mip=m(mi.financed_amount),
        upfront_mi_rate=mi.upfront_rate,
        total_loan_amount=m(total_loan),
        ltv=mi.ltv,
        base_ltv=mi.base_ltv,
        monthly_principal_and_interest=m(pi),
        effective_principal_and_interest=m(schedule[0].payment if schedule else pi),
        monthly_tax=m(monthly_tax),
        monthly_insurance=m(monthly_ins),
        monthly_mi=m(mi.monthly),
        mi_rate_percent=mi.annual_rate,
        monthly_hoa=m(monthly_hoa),
        monthly_dpa_payment=m(dpa_pmt),
        monthly_dpa2_payment=m(dpa2_pmt),
        base_monthly_payment=m(base_payment),
        total_monthly_payment=m(total_payment),
        buydown_schedule=[
            BuydownYear(
                year=row.year,
                rate=row.rate,
                payment=m(row.payment),
                subsidy=m(row.subsidy),
                full_payment=m(row.full_payment),
            )
            for row in schedule
        ],
        buydown_cost=m(buydown_cost),
        dti=DTIRatios(front_end=fe, back_end=be),
        dscr=dscr_result,
        qualification=qualification,
        income=income,
        affordability_conv=afford_conv,
        affordability_fha=afford_fha,
        math_breakdown=breakdown,
        closing_cost_items={k: m(v) for k, v in costs.items.items()},
        closing_cost_subtotals={k: m(v) for k, v in costs.subtotals.items()},
        prepaid_interest=m(costs.prepaid_interest),
        prepaid_interest_days=costs.prepaid_interest_days,
        total_closing_costs=m(total_closing),
        net_closing_costs=m(net_closing),
        unused_credits=m(unused),
        seller_concessions_amount=m(requested),
        effective_seller_concessions=m(effective),
        excess_concessions=m(excess),
        seller_concessions_percent=pct_of(requested, price),
        max_concessions_percent=max_pct,
        max_concessions_allowed=m(max_allowed),
        lender_credits_amount=m(lender_credits),
        warnings=ResultWarnings(
            excess_concessions=excess > 0,
            unused_credits=unused > 0,
            excess_dpa=excess_dpa,
        ),
        earnest_money=m(earnest),
        down_payment_required=m(down),
        dpa_funding=m(dpa_funding),
        total_funds_required=m(funds_required),
        cash_to_close=cash_to_close,
        refund_due=-cash_to_close if cash_to_close < 0 else 0.0,
        is_refund=cash_to_close < 0,
    )
