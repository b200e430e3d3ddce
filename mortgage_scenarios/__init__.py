"""Mortgage scenario calculation and validation engine.

This module also exposes the package version for runtime display."""

from mortgage_scenarios.version import __version__
from mortgage_scenarios.models import (
    AssistanceLoan,
    BuydownConfig,
    BuydownType,
    CalculatedResults,
    ClosingCostItem,
    CostCategory,
    CreditMode,
    IncomeConfig,
    LoanProgram,
    MortgageInsuranceOverride,
    Occupancy,
    Scenario,
    TransactionType,
)
from mortgage_scenarios.presets import EngineConfig
from mortgage_scenarios.engine import calculate_scenario
from mortgage_scenarios.rules import (
    LoanLimits,
    LTVRules,
    ValidationIssue,
    ValidationThresholds,
    has_blocking,
    validate_scenario,
)

__all__ = [
    "__version__",
    "AssistanceLoan",
    "BuydownConfig",
    "BuydownType",
    "CalculatedResults",
    "ClosingCostItem",
    "CostCategory",
    "CreditMode",
    "EngineConfig",
    "IncomeConfig",
    "LTVRules",
    "LoanLimits",
    "LoanProgram",
    "MortgageInsuranceOverride",
    "Occupancy",
    "Scenario",
    "TransactionType",
    "ValidationIssue",
    "ValidationThresholds",
    "calculate_scenario",
    "has_blocking",
    "validate_scenario",
]
