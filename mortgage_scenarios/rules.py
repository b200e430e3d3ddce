from __future__ import annotations

import logging
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, Field

from mortgage_scenarios.models import CalculatedResults, LoanProgram, Scenario

logger = logging.getLogger(__name__)


class ValidationIssue(BaseModel):
    field: str
    message: str
    severity: Literal["error", "warning"]
    code: str = ""
    context: Dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Configuration (2025 agency limits; callers override per user)
# ---------------------------------------------------------------------------


class ConventionalLimits(BaseModel):
    conforming: float = 806500.0
    high_balance: float = 1209750.0


class FHALimits(BaseModel):
    floor: float = 524225.0
    ceiling: float = 1209750.0


class VALimits(BaseModel):
    no_limit: bool = True
    limit: float = 806500.0


class JumboLimits(BaseModel):
    minimum: float = 806501.0


class LoanLimits(BaseModel):
    conventional: ConventionalLimits = Field(default_factory=ConventionalLimits)
    fha: FHALimits = Field(default_factory=FHALimits)
    va: VALimits = Field(default_factory=VALimits)
    jumbo: JumboLimits = Field(default_factory=JumboLimits)


class ProgramLTVRule(BaseModel):
    min_down_payment: float
    max_ltv: float
    pmi_required: Optional[float] = None


class LTVRules(BaseModel):
    conventional: ProgramLTVRule = Field(
        default_factory=lambda: ProgramLTVRule(min_down_payment=3.0, max_ltv=97.0, pmi_required=80.0)
    )
    fha: ProgramLTVRule = Field(default_factory=lambda: ProgramLTVRule(min_down_payment=3.5, max_ltv=96.5))
    va: ProgramLTVRule = Field(default_factory=lambda: ProgramLTVRule(min_down_payment=0.0, max_ltv=100.0))
    jumbo: ProgramLTVRule = Field(default_factory=lambda: ProgramLTVRule(min_down_payment=10.0, max_ltv=90.0))

    def for_program(self, program) -> ProgramLTVRule:
        return getattr(self, LoanProgram(program).name.lower())


class ValidationThresholds(BaseModel):
    purchase_price_min: float = 50000.0
    interest_rate_min: float = 2.0
    interest_rate_max: float = 12.0
    dti_front_end_warning: float = 43.0
    dti_back_end_max: float = 50.0
    credit_score_fha_min: int = 580
    credit_score_conventional_min: int = 620
    credit_score_va_min: int = 580
    credit_score_jumbo_min: int = 700
    dscr_min: float = 1.0


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------


def _loan_limit_issues(program: LoanProgram, base_loan: float, limits: LoanLimits) -> List[ValidationIssue]:
    res: List[ValidationIssue] = []
    if program == LoanProgram.CONVENTIONAL:
        conv = limits.conventional
        if base_loan > conv.high_balance:
            res.append(
                ValidationIssue(
                    field="loanProgram",
                    code="CONV_OVER_HIGH_BALANCE",
                    message=f"Exceeds high-balance limit (${conv.high_balance:,.0f}). Use a Jumbo loan.",
                    severity="error",
                    context={"loan": base_loan, "limit": conv.high_balance},
                )
            )
        elif base_loan > conv.conforming:
            res.append(
                ValidationIssue(
                    field="loanProgram",
                    code="CONV_OVER_CONFORMING",
                    message=f"Exceeds conforming limit (${conv.conforming:,.0f}). Consider Jumbo loan.",
                    severity="warning",
                    context={"loan": base_loan, "limit": conv.conforming},
                )
            )
    elif program == LoanProgram.FHA:
        fha = limits.fha
        if base_loan > fha.ceiling:
            res.append(
                ValidationIssue(
                    field="purchasePrice",
                    code="FHA_OVER_CEILING",
                    message=f"Exceeds FHA loan limit (${fha.ceiling:,.0f})",
                    severity="error",
                    context={"loan": base_loan, "limit": fha.ceiling},
                )
            )
        elif base_loan > fha.floor:
            res.append(
                ValidationIssue(
                    field="purchasePrice",
                    code="FHA_OVER_FLOOR",
                    message=f"Above the FHA floor (${fha.floor:,.0f}); confirm the county limit.",
                    severity="warning",
                    context={"loan": base_loan, "limit": fha.floor},
                )
            )
    elif program == LoanProgram.VA:
        if not limits.va.no_limit and base_loan > limits.va.limit:
            res.append(
                ValidationIssue(
                    field="purchasePrice",
                    code="VA_OVER_LIMIT",
                    message=f"Exceeds VA loan limit (${limits.va.limit:,.0f})",
                    severity="error",
                    context={"loan": base_loan, "limit": limits.va.limit},
                )
            )
    elif program == LoanProgram.JUMBO:
        if base_loan < limits.jumbo.minimum:
            res.append(
                ValidationIssue(
                    field="loanProgram",
                    code="JUMBO_UNDER_MINIMUM",
                    message=f"Loan is below the jumbo minimum (${limits.jumbo.minimum:,.0f}). Consider Conventional.",
                    severity="warning",
                    context={"loan": base_loan, "limit": limits.jumbo.minimum},
                )
            )
    return res


def _credit_minimum(program: LoanProgram, thresholds: ValidationThresholds) -> Tuple[int, str, str]:
    """(minimum score, severity, message) for a program."""

    if program == LoanProgram.FHA:
        m = thresholds.credit_score_fha_min
        return m, "error", f"FHA requires minimum {m} credit score"
    if program == LoanProgram.VA:
        m = thresholds.credit_score_va_min
        return m, "warning", f"VA lenders typically require {m}+ credit score"
    if program == LoanProgram.JUMBO:
        m = thresholds.credit_score_jumbo_min
        return m, "warning", f"Jumbo loans typically require {m}+ credit score"
    m = thresholds.credit_score_conventional_min
    return m, "warning", f"Conventional loans typically require {m}+ credit score"


def validate_scenario(
    scenario: Scenario,
    results: CalculatedResults,
    loan_limits: Optional[LoanLimits] = None,
    ltv_rules: Optional[LTVRules] = None,
    thresholds: Optional[ValidationThresholds] = None,
) -> List[ValidationIssue]:
    """Check a calculated scenario against program limits and sanity bounds.

    Every check runs independently; the returned list holds one issue per
    failing check.  Neither argument is modified.
    """

    loan_limits = loan_limits or LoanLimits()
    ltv_rules = ltv_rules or LTVRules()
    thresholds = thresholds or ValidationThresholds()
    program = scenario.loan_program
    res: List[ValidationIssue] = []

    price = scenario.purchase_price
    if price <= 0:
        res.append(
            ValidationIssue(
                field="purchasePrice",
                code="PRICE_NOT_POSITIVE",
                message="Purchase price must be greater than zero",
                severity="error",
            )
        )
    if price < thresholds.purchase_price_min:
        res.append(
            ValidationIssue(
                field="purchasePrice",
                code="PRICE_LOW",
                message="Purchase price seems unusually low",
                severity="warning",
                context={"price": price, "minimum": thresholds.purchase_price_min},
            )
        )

    res.extend(_loan_limit_issues(program, results.base_loan_amount, loan_limits))

    rule = ltv_rules.for_program(program)
    if scenario.down_payment_percent < rule.min_down_payment:
        res.append(
            ValidationIssue(
                field="downPaymentPercent",
                code="MIN_DOWN_PAYMENT",
                message=f"{program.value} requires minimum {rule.min_down_payment}% down payment",
                severity="error",
                context={"actual": scenario.down_payment_percent, "minimum": rule.min_down_payment},
            )
        )
    # FHA and VA LTV is measured before the financed upfront premium
    ltv = results.base_ltv if program in (LoanProgram.FHA, LoanProgram.VA) else results.ltv
    if ltv > rule.max_ltv:
        res.append(
            ValidationIssue(
                field="downPaymentPercent",
                code="MAX_LTV",
                message=f"LTV ({ltv:.1f}%) exceeds maximum {rule.max_ltv}% for {program.value}",
                severity="error",
                context={"actual": ltv, "limit": rule.max_ltv},
            )
        )

    has_borrower_income = scenario.income.borrower_total > 0
    has_rental_income = scenario.income.rental > 0
    if has_borrower_income or not has_rental_income:
        fe = results.dti.front_end
        be = results.dti.back_end
        if fe > thresholds.dti_front_end_warning:
            res.append(
                ValidationIssue(
                    field="income",
                    code="FRONT_DTI_HIGH",
                    message=f"Front-end DTI ({fe:.1f}%) exceeds typical limit ({thresholds.dti_front_end_warning}%)",
                    severity="warning",
                    context={"actual": fe, "limit": thresholds.dti_front_end_warning},
                )
            )
        if be > thresholds.dti_back_end_max:
            res.append(
                ValidationIssue(
                    field="income",
                    code="BACK_DTI_HIGH",
                    message=f"Back-end DTI ({be:.1f}%) exceeds typical limit ({thresholds.dti_back_end_max}%)",
                    severity="error",
                    context={"actual": be, "limit": thresholds.dti_back_end_max},
                )
            )

    min_score, severity, message = _credit_minimum(program, thresholds)
    if scenario.credit_score < min_score:
        res.append(
            ValidationIssue(
                field="creditScore",
                code="CREDIT_SCORE_LOW",
                message=message,
                severity=severity,
                context={"actual": scenario.credit_score, "minimum": min_score},
            )
        )

    if scenario.interest_rate > thresholds.interest_rate_max:
        res.append(
            ValidationIssue(
                field="interestRate",
                code="RATE_HIGH",
                message="Interest rate seems unusually high. Please verify.",
                severity="warning",
            )
        )
    if scenario.interest_rate < thresholds.interest_rate_min:
        res.append(
            ValidationIssue(
                field="interestRate",
                code="RATE_LOW",
                message="Interest rate seems unusually low. Please verify.",
                severity="warning",
            )
        )

    if scenario.interest_only and program in (LoanProgram.FHA, LoanProgram.VA):
        res.append(
            ValidationIssue(
                field="interestOnly",
                code="IO_NOT_ALLOWED",
                message=f"Interest-only is not available on {program.value} loans; payment shown is fully amortizing.",
                severity="warning",
            )
        )

    if scenario.dscr_mode and results.dscr is not None and results.dscr.ratio < thresholds.dscr_min:
        res.append(
            ValidationIssue(
                field="income",
                code="DSCR_LOW",
                message=f"DSCR ({results.dscr.ratio:.2f}) is below the {thresholds.dscr_min:.2f} minimum",
                severity="warning",
                context={"actual": results.dscr.ratio, "minimum": thresholds.dscr_min},
            )
        )

    logger.debug("Validation produced %d issue(s) for %s", len(res), program.value)
    return res


def has_blocking(res: List[ValidationIssue]) -> bool:
    return any(r.severity == "error" for r in res)
