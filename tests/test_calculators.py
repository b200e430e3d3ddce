import pytest

from mortgage_scenarios.calculators import (
    active_assistance_loans,
    affordability,
    amortization_schedule,
    assistance_payment,
    buydown_schedule,
    conventional_mi_rate,
    dscr,
    dti,
    fha_mip_factor,
    max_affordable_payment,
    max_concession_percent,
    monthly_payment,
    payment_at_rate,
    principal_from_payment,
    resolve_mortgage_insurance,
    upfront_premium_rate,
    va_funding_fee_pct,
)
from mortgage_scenarios.models import AssistanceLoan, LoanProgram, Occupancy, Scenario
from mortgage_scenarios.presets import ConcessionCaps, MortgageInsuranceTables, VA_TABLE


def test_amortization_inverse_roundtrip():
    principal = 400000
    rate = 6.5
    term = 360
    pmt = monthly_payment(principal, rate, term)
    back = principal_from_payment(pmt, rate, term)
    assert abs(back - principal) < 1.5


def test_zero_rate_is_straight_line():
    assert monthly_payment(360000, 0, 360) == 1000.0
    assert monthly_payment(475000, 0.0, 360) == 475000 / 360


def test_zero_term_pays_nothing():
    assert monthly_payment(300000, 6.5, 0) == 0.0


def test_interest_only_payment():
    assert payment_at_rate(475000, 6.5, 360, interest_only=True) == pytest.approx(475000 * 0.065 / 12)
    assert payment_at_rate(475000, 6.5, 360) == pytest.approx(monthly_payment(475000, 6.5, 360))


def test_amortization_schedule_pays_off():
    sched = amortization_schedule(200000, 6.0, 360)
    assert len(sched) == 360
    assert sched["ending_balance"].iloc[-1] == pytest.approx(0.0, abs=0.01)
    assert sched["principal"].sum() == pytest.approx(200000, abs=0.01)


def test_conventional_mi_tiers_monotonic():
    tables = MortgageInsuranceTables()
    assert conventional_mi_rate(80.0, tables) == 0.0
    rates = [conventional_mi_rate(ltv, tables) for ltv in (81, 86, 91, 96)]
    assert rates == sorted(rates)
    assert rates[0] > 0


def test_fha_mip_factor_breakpoint():
    tables = MortgageInsuranceTables()
    assert fha_mip_factor(96.5, 360, tables) == 0.55
    assert fha_mip_factor(95.0, 360, tables) == 0.50
    assert fha_mip_factor(96.5, 180, tables) == 0.40


def test_va_funding_fee_tiers():
    assert va_funding_fee_pct(True, 0, VA_TABLE) == 2.15
    assert va_funding_fee_pct(True, 5, VA_TABLE) == 1.50
    assert va_funding_fee_pct(True, 10, VA_TABLE) == 1.25
    assert va_funding_fee_pct(False, 0, VA_TABLE) == 3.30


def test_upfront_rate_uses_scenario_value_when_given():
    tables = MortgageInsuranceTables()
    fha = Scenario(loan_program=LoanProgram.FHA, upfront_mi_rate=0.0)
    assert upfront_premium_rate(fha, tables) == 1.75
    assert upfront_premium_rate(fha.model_copy(update={"upfront_mi_rate": 1.0}), tables) == 1.0
    assert upfront_premium_rate(Scenario(), tables) == 0.0


def test_fha_upfront_financed_into_total():
    s = Scenario(loan_program=LoanProgram.FHA).with_down_payment_percent(3.5)
    quote = resolve_mortgage_insurance(s, MortgageInsuranceTables())
    assert quote.base_loan == pytest.approx(482500)
    assert quote.financed_amount == pytest.approx(482500 * 0.0175)
    assert quote.total_loan == pytest.approx(quote.base_loan + quote.financed_amount)
    assert quote.base_ltv == pytest.approx(96.5)
    assert quote.ltv > quote.base_ltv
    assert quote.monthly == pytest.approx(quote.total_loan * 0.0055 / 12)


def test_va_has_no_monthly_mi():
    s = Scenario(loan_program=LoanProgram.VA, down_payment_amount=0.0, down_payment_percent=0.0)
    quote = resolve_mortgage_insurance(s, MortgageInsuranceTables())
    assert quote.upfront_rate == 2.15
    assert quote.financed_amount == pytest.approx(10750)
    assert quote.monthly == 0.0


def test_jumbo_has_no_mi():
    s = Scenario(loan_program=LoanProgram.JUMBO)
    quote = resolve_mortgage_insurance(s, MortgageInsuranceTables())
    assert quote.monthly == 0.0
    assert quote.financed_amount == 0.0


def test_manual_mi_override_consistent_both_ways():
    tables = MortgageInsuranceTables()
    by_dollars = resolve_mortgage_insurance(Scenario().with_manual_mi_monthly(150), tables)
    assert by_dollars.monthly == 150
    assert by_dollars.annual_rate == pytest.approx(150 * 12 / 475000 * 100)

    by_rate = resolve_mortgage_insurance(Scenario().with_manual_mi_rate(0.5, 475000), tables)
    assert by_rate.annual_rate == 0.5
    assert by_rate.monthly == pytest.approx(475000 * 0.005 / 12)


def test_buydown_2_1_schedule():
    rows, cost = buydown_schedule(400000, 7.0, 360, "2-1")
    assert [r.rate for r in rows] == [5.0, 6.0, 7.0]
    full = monthly_payment(400000, 7.0, 360)
    assert rows[0].payment == pytest.approx(monthly_payment(400000, 5.0, 360))
    assert rows[2].payment == pytest.approx(full)
    assert rows[2].subsidy == 0.0
    assert cost == pytest.approx(sum((full - r.payment) * 12 for r in rows))


def test_buydown_reduced_rate_floors_at_zero():
    rows, _ = buydown_schedule(100000, 2.0, 360, "3-2-1")
    assert rows[0].rate == 0.0
    assert rows[0].payment == pytest.approx(100000 / 360)


def test_deferred_assistance_has_no_payment():
    loan = AssistanceLoan(active=True, amount=10000, rate=5.0, term_months=120, is_deferred=True)
    assert assistance_payment(loan) == 0.0
    amortizing = loan.model_copy(update={"is_deferred": False})
    assert assistance_payment(amortizing) == pytest.approx(monthly_payment(10000, 5.0, 120))


def test_second_assistance_requires_first():
    second = AssistanceLoan(active=True, amount=5000)
    s = Scenario(dpa2=second)
    assert active_assistance_loans(s) == [None, None]
    s2 = Scenario(dpa=AssistanceLoan(active=True, amount=10000), dpa2=second)
    assert active_assistance_loans(s2)[1] is not None


def test_dti_percentages_and_zero_income():
    fe, be = dti(3000, 500, 10000)
    assert fe == pytest.approx(30.0)
    assert be == pytest.approx(35.0)
    assert dti(3000, 500, 0) == (0.0, 0.0)


def test_dscr_flagging():
    low = dscr(1800, 2000)
    high = dscr(2200, 2000)
    assert low.passes is False
    assert high.passes is True
    assert dscr(2000, 0).ratio == 0.0


def test_max_affordable_payment():
    fe, be, cons = max_affordable_payment(12000, 500, 46.99, 49.99)
    assert cons <= fe and cons <= be
    assert cons >= 0


def test_affordability_ratio_method():
    res, lines = affordability(10000, 1800, 46.99, 49.99, 3200, 500000, 5)
    assert res.max_housing_payment == pytest.approx(10000 * 0.4999 - 1800)
    assert res.max_price == pytest.approx(500000 * res.max_housing_payment / 3200)
    assert res.max_loan == pytest.approx(res.max_price * 0.95)
    assert any("Back-End" in line for line in lines)


def test_concession_caps():
    caps = ConcessionCaps()
    assert max_concession_percent(LoanProgram.CONVENTIONAL, Occupancy.PRIMARY, 95, caps) == 3.0
    assert max_concession_percent(LoanProgram.CONVENTIONAL, Occupancy.PRIMARY, 80, caps) == 6.0
    assert max_concession_percent(LoanProgram.CONVENTIONAL, Occupancy.PRIMARY, 70, caps) == 9.0
    assert max_concession_percent(LoanProgram.FHA, Occupancy.PRIMARY, 96.5, caps) == 6.0
    assert max_concession_percent(LoanProgram.VA, Occupancy.PRIMARY, 100, caps) == 4.0
    assert max_concession_percent(LoanProgram.CONVENTIONAL, Occupancy.INVESTMENT, 70, caps) == 2.0


def test_jumbo_concession_cap_can_be_set_separately():
    caps = ConcessionCaps()
    assert max_concession_percent(LoanProgram.JUMBO, Occupancy.PRIMARY, 85, caps) == 6.0
    fixed = ConcessionCaps(jumbo=0.0)
    assert max_concession_percent(LoanProgram.JUMBO, Occupancy.PRIMARY, 85, fixed) == 0.0
    assert max_concession_percent(LoanProgram.CONVENTIONAL, Occupancy.PRIMARY, 85, fixed) == 6.0
