"""Closing cost line items: resolving each fee to dollars and totaling them."""
from __future__ import annotations

import calendar
from datetime import date
from typing import Dict, Iterable, Optional

import pandas as pd
from pydantic import BaseModel, Field

from mortgage_scenarios.models import ClosingCostItem, CostCategory
from mortgage_scenarios.presets import TitleInsuranceSchedule
from mortgage_scenarios.utils import nz, nz_pos

PREPAID_INTEREST = "prepaid-interest"
TITLE_INSURANCE = "title-insurance"
INSURANCE_MONTHS_ITEMS = {"prepaid-insurance", "insurance-reserves"}
TAX_MONTHS_ITEMS = {"tax-reserves"}
HOA_PREPAY = "hoa-prepay"
# Dropped from the fee sheet entirely when the property has no HOA.
HOA_ITEMS = {HOA_PREPAY, "hoa-transfer"}


class CostContext(BaseModel):
    """Scenario figures a line item may be scaled by."""

    total_loan_amount: float = 0.0
    interest_rate: float = 0.0
    property_tax_yearly: float = 0.0
    insurance_yearly: float = 0.0
    hoa_monthly: float = 0.0
    settlement_date: Optional[date] = None


class ClosingCostSummary(BaseModel):
    total: float = 0.0
    items: Dict[str, float] = Field(default_factory=dict)
    subtotals: Dict[str, float] = Field(default_factory=dict)
    prepaid_interest: float = 0.0
    prepaid_interest_days: float = 0.0


def prepaid_interest_days(settlement_date: Optional[date]) -> int:
    """Days of interest collected at closing: settlement through month end, inclusive."""

    if settlement_date is None:
        return 0
    last_day = calendar.monthrange(settlement_date.year, settlement_date.month)[1]
    return max(0, last_day - settlement_date.day + 1)


def prepaid_interest(loan_amount, annual_rate_pct, days):
    """Per-diem interest (365-day year) times the number of days."""

    loan = nz(loan_amount)
    rate = nz(annual_rate_pct)
    if loan <= 0 or rate <= 0:
        return 0.0
    return loan * rate / 100 / 365 * nz(days)


def lenders_title_insurance(loan_amount, schedule: TitleInsuranceSchedule):
    """Lender's title premium from the banded schedule.

    Each band charges its rate on the slice of the loan inside it; a loan
    above the top band adds the flat amount instead of a further rate.
    """

    loan = nz(loan_amount)
    if loan <= 0:
        return 0.0
    premium = 0.0
    lower = 0.0
    for band in sorted(schedule.bands, key=lambda b: b.upper):
        slice_amt = min(loan, band.upper) - lower
        if slice_amt <= 0:
            break
        premium += slice_amt * band.rate / 100
        lower = band.upper
    if schedule.bands and loan > max(b.upper for b in schedule.bands):
        premium += schedule.above_top_flat
    return premium


def _prepaid_days(item: ClosingCostItem, ctx: CostContext):
    if ctx.settlement_date is not None:
        return prepaid_interest_days(ctx.settlement_date)
    return nz_pos(item.days)


def item_cost(item: ClosingCostItem, ctx: CostContext, schedule: TitleInsuranceSchedule) -> float:
    """Dollar amount contributed by one fee sheet line."""

    if item.id in HOA_ITEMS and nz(ctx.hoa_monthly) <= 0:
        return 0.0
    if item.id == PREPAID_INTEREST:
        return prepaid_interest(ctx.total_loan_amount, ctx.interest_rate, _prepaid_days(item, ctx))
    if item.id == TITLE_INSURANCE:
        manual = nz_pos(item.amount)
        if manual > 0:
            return manual
        return lenders_title_insurance(ctx.total_loan_amount, schedule)
    if item.id in INSURANCE_MONTHS_ITEMS:
        return nz_pos(ctx.insurance_yearly) / 12 * nz_pos(item.months)
    if item.id in TAX_MONTHS_ITEMS:
        return nz_pos(ctx.property_tax_yearly) / 12 * nz_pos(item.months)
    if item.id == HOA_PREPAY:
        return nz_pos(ctx.hoa_monthly) * nz_pos(item.months)

    val = nz_pos(item.amount)
    if item.is_fixed:
        return val
    # percent items always key off the total (financed) loan amount
    return nz_pos(ctx.total_loan_amount) * val / 100


def aggregate_closing_costs(
    items: Iterable[ClosingCostItem],
    ctx: CostContext,
    schedule: Optional[TitleInsuranceSchedule] = None,
) -> ClosingCostSummary:
    """Resolve every line item and total them, with per-category subtotals."""

    schedule = schedule or TitleInsuranceSchedule()
    rows = []
    prepaid_amt = 0.0
    prepaid_days = 0.0
    for item in items:
        cost = item_cost(item, ctx, schedule)
        if item.id == PREPAID_INTEREST:
            prepaid_amt = cost
            prepaid_days = _prepaid_days(item, ctx)
        rows.append({"id": item.id, "category": CostCategory(item.category).value, "cost": cost})

    if not rows:
        return ClosingCostSummary(prepaid_interest_days=prepaid_interest_days(ctx.settlement_date))

    df = pd.DataFrame(rows)
    order = [c.value for c in CostCategory]
    by_cat = df.groupby("category", sort=False)["cost"].sum()
    subtotals = {cat: float(by_cat[cat]) for cat in order if cat in by_cat.index}
    per_item = df.groupby("id", sort=False)["cost"].sum()
    return ClosingCostSummary(
        total=float(df["cost"].sum()),
        items={k: float(v) for k, v in per_item.items()},
        subtotals=subtotals,
        prepaid_interest=prepaid_amt,
        prepaid_interest_days=prepaid_days,
    )
