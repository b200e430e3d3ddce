"""Assorted numeric helpers shared by the calculators."""
from __future__ import annotations

import math
from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")


def nz(x, default=0.0):
    """Return a finite float for ``x`` or a fallback value.

    Scenario values arrive from forms and stored records where blanks show
    up as ``None`` or ``NaN``.  This mirrors the spreadsheet ``NZ()``
    function so later math never sees a missing or infinite number.
    """

    try:
        if x is None:
            return default
        val = float(x)
    except (TypeError, ValueError):
        return default
    if math.isnan(val) or math.isinf(val):
        return default
    return val


def nz_pos(x):
    """Like :func:`nz` but clamps negatives to zero (money fields)."""

    return max(0.0, nz(x))


def pct_of(part, whole):
    """``part`` as a percentage of ``whole``; ``0`` when ``whole`` is zero."""

    w = nz(whole)
    if w == 0:
        return 0.0
    return 100.0 * nz(part) / w


def round_money(x):
    """Round a dollar figure to the nearest cent (half-up)."""

    return float(Decimal(str(nz(x))).quantize(CENT, rounding=ROUND_HALF_UP))


def round_pct(x, places=2):
    """Round a percentage for storage on a scenario (e.g. down payment %)."""

    q = Decimal(1).scaleb(-places)
    return float(Decimal(str(nz(x))).quantize(q, rounding=ROUND_HALF_UP))
