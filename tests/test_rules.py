import pytest

from mortgage_scenarios import (
    IncomeConfig,
    LoanLimits,
    LoanProgram,
    Occupancy,
    Scenario,
    ValidationThresholds,
    calculate_scenario,
    has_blocking,
    validate_scenario,
)
from mortgage_scenarios.rules import LTVRules


def _issues(scenario, **kw):
    return validate_scenario(scenario, calculate_scenario(scenario), **kw)


def _codes(scenario, **kw):
    return {i.code for i in _issues(scenario, **kw)}


def test_clean_scenario_has_no_issues():
    s = Scenario(income=IncomeConfig(borrower1=12000), monthly_debts=500)
    assert _issues(s) == []


def test_fha_three_percent_down_blocks():
    s = Scenario().with_program(LoanProgram.FHA).with_down_payment_percent(3.0)
    issues = _issues(s)
    down = [i for i in issues if i.code == "MIN_DOWN_PAYMENT"]
    assert len(down) == 1
    assert down[0].field == "downPaymentPercent"
    assert down[0].severity == "error"
    assert "3.5" in down[0].message
    assert has_blocking(issues)


def test_fha_ltv_checked_before_financed_premium():
    s = Scenario().with_program(LoanProgram.FHA).with_down_payment_percent(3.5)
    codes = _codes(s)
    assert "MAX_LTV" not in codes
    assert "MIN_DOWN_PAYMENT" not in codes


def test_conventional_over_max_ltv():
    s = Scenario().with_down_payment_percent(2.0)
    codes = _codes(s)
    assert {"MIN_DOWN_PAYMENT", "MAX_LTV"} <= codes


def test_conforming_and_high_balance_limits():
    over_conforming = Scenario().with_purchase_price(900000)
    issues = {i.code: i for i in _issues(over_conforming)}
    assert issues["CONV_OVER_CONFORMING"].severity == "warning"

    over_high_balance = Scenario().with_purchase_price(1400000)
    issues = {i.code: i for i in _issues(over_high_balance)}
    assert issues["CONV_OVER_HIGH_BALANCE"].severity == "error"
    assert "CONV_OVER_CONFORMING" not in issues


def test_fha_limits():
    base = Scenario().with_program(LoanProgram.FHA)
    assert "FHA_OVER_FLOOR" in _codes(base.with_purchase_price(600000))
    assert "FHA_OVER_CEILING" in _codes(base.with_purchase_price(1300000))
    assert not {"FHA_OVER_FLOOR", "FHA_OVER_CEILING"} & _codes(base.with_purchase_price(400000))


def test_va_limit_only_when_enabled():
    s = Scenario().with_program(LoanProgram.VA).with_purchase_price(1000000)
    assert "VA_OVER_LIMIT" not in _codes(s)
    limits = LoanLimits()
    limits = limits.model_copy(update={"va": limits.va.model_copy(update={"no_limit": False})})
    assert "VA_OVER_LIMIT" in _codes(s, loan_limits=limits)


def test_jumbo_below_minimum_warns():
    s = Scenario().with_program(LoanProgram.JUMBO).with_down_payment_percent(20)
    assert "JUMBO_UNDER_MINIMUM" in _codes(s)


def test_price_checks():
    zero = Scenario(purchase_price=0, down_payment_amount=0, down_payment_percent=0)
    assert {"PRICE_NOT_POSITIVE", "PRICE_LOW"} <= _codes(zero)
    cheap = Scenario().with_purchase_price(40000)
    codes = _codes(cheap)
    assert "PRICE_LOW" in codes
    assert "PRICE_NOT_POSITIVE" not in codes


def test_dti_thresholds():
    s = Scenario(income=IncomeConfig(borrower1=7000), monthly_debts=1000)
    issues = {i.code: i for i in _issues(s)}
    assert issues["FRONT_DTI_HIGH"].severity == "warning"
    assert issues["BACK_DTI_HIGH"].severity == "error"


def test_dti_skipped_for_rental_only_income():
    s = Scenario(
        occupancy=Occupancy.INVESTMENT,
        down_payment_amount=125000,
        down_payment_percent=25,
        income=IncomeConfig(rental=1000),
        monthly_debts=2000,
    )
    codes = _codes(s)
    assert "FRONT_DTI_HIGH" not in codes
    assert "BACK_DTI_HIGH" not in codes


@pytest.mark.parametrize(
    "program, score, severity",
    [
        (LoanProgram.FHA, 560, "error"),
        (LoanProgram.CONVENTIONAL, 600, "warning"),
        (LoanProgram.VA, 560, "warning"),
    ],
)
def test_credit_score_minimums(program, score, severity):
    s = Scenario(credit_score=score).with_program(program)
    low = [i for i in _issues(s) if i.code == "CREDIT_SCORE_LOW"]
    assert len(low) == 1
    assert low[0].severity == severity


def test_rate_sanity_bounds():
    assert "RATE_HIGH" in _codes(Scenario(interest_rate=13.0))
    assert "RATE_LOW" in _codes(Scenario(interest_rate=1.5))
    assert not {"RATE_HIGH", "RATE_LOW"} & _codes(Scenario(interest_rate=7.0))


def test_interest_only_flagged_on_fha():
    s = Scenario().with_program(LoanProgram.FHA).model_copy(update={"interest_only": True})
    assert "IO_NOT_ALLOWED" in _codes(s)
    assert "IO_NOT_ALLOWED" not in _codes(Scenario(interest_only=True))


def test_dscr_below_minimum_warns():
    s = Scenario(
        occupancy=Occupancy.INVESTMENT,
        down_payment_amount=125000,
        down_payment_percent=25,
        is_dscr_loan=True,
        income=IncomeConfig(rental=1500),
    )
    issues = {i.code: i for i in _issues(s)}
    assert issues["DSCR_LOW"].severity == "warning"


def test_custom_thresholds_and_rules():
    s = Scenario(interest_rate=7.0)
    assert "RATE_HIGH" in _codes(s, thresholds=ValidationThresholds(interest_rate_max=6.0))
    strict = LTVRules().model_copy(
        update={"conventional": LTVRules().conventional.model_copy(update={"min_down_payment": 10.0})}
    )
    assert "MIN_DOWN_PAYMENT" in _codes(s, ltv_rules=strict)


def test_validation_does_not_modify_inputs():
    s = Scenario(income=IncomeConfig(borrower1=5000), monthly_debts=2500)
    r = calculate_scenario(s)
    before = (s.model_dump(), r.model_dump())
    validate_scenario(s, r)
    assert (s.model_dump(), r.model_dump()) == before


def test_has_blocking():
    assert not has_blocking([])
    warn_only = _issues(Scenario(interest_rate=13.0))
    assert warn_only and not has_blocking(warn_only)


@pytest.mark.parametrize("percent", [0, 3.5, 10])
def test_va_financed_fee_does_not_trip_max_ltv(percent):
    s = Scenario().with_program(LoanProgram.VA).with_down_payment_percent(percent)
    r = calculate_scenario(s)
    assert r.financed_mip > 0
    codes = {i.code for i in validate_scenario(s, r)}
    assert "MAX_LTV" not in codes
    assert "MIN_DOWN_PAYMENT" not in codes
