"""Side-by-side comparison of several scenarios."""
from __future__ import annotations

from typing import Mapping, Optional, Sequence, Union

import pandas as pd

from mortgage_scenarios.engine import calculate_scenario
from mortgage_scenarios.models import Scenario
from mortgage_scenarios.presets import DISCLAIMER, EngineConfig
from mortgage_scenarios.rules import validate_scenario

COMPARISON_ROWS = [
    "Program",
    "Purchase Price",
    "Down Payment %",
    "Base Loan",
    "Total Loan",
    "LTV %",
    "Rate %",
    "P&I",
    "Mortgage Insurance",
    "Total Monthly Payment",
    "Front-End DTI %",
    "Back-End DTI %",
    "Qualifies",
    "Closing Costs",
    "Net Closing Costs",
    "Cash to Close",
    "Errors",
    "Warnings",
]


def compare_scenarios(
    scenarios: Union[Mapping[str, Scenario], Sequence[Scenario]],
    config: Optional[EngineConfig] = None,
) -> pd.DataFrame:
    """Calculate and validate each scenario; one column per scenario."""

    if isinstance(scenarios, Mapping):
        named = list(scenarios.items())
    else:
        named = [(f"Scenario {i}", s) for i, s in enumerate(scenarios, start=1)]

    columns = {}
    for name, scenario in named:
        r = calculate_scenario(scenario, config)
        issues = validate_scenario(scenario, r)
        columns[name] = [
            scenario.loan_program.value,
            scenario.purchase_price,
            scenario.down_payment_percent,
            r.base_loan_amount,
            r.total_loan_amount,
            round(r.ltv, 2),
            scenario.interest_rate,
            r.monthly_principal_and_interest,
            r.monthly_mi,
            r.total_monthly_payment,
            round(r.dti.front_end, 2),
            round(r.dti.back_end, 2),
            r.qualification.passes,
            r.total_closing_costs,
            r.net_closing_costs,
            r.cash_to_close,
            sum(1 for i in issues if i.severity == "error"),
            sum(1 for i in issues if i.severity == "warning"),
        ]
    table = pd.DataFrame(columns, index=COMPARISON_ROWS)
    table.attrs["disclaimer"] = DISCLAIMER
    return table
