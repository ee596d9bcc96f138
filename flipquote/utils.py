"""Assorted utility helpers."""
from __future__ import annotations

import math

import pandas as pd


def nz(x, default=0.0):
    """Return a float for ``x`` or a fallback value.

    Intake forms and uploaded deal sheets leave optional amounts blank, which
    arrive here as ``None``, empty strings or ``NaN``.  Treating them as zero
    keeps the leverage and liquidity math total.  Infinite values (``"1e400"``
    from a sheet) are treated the same way.
    """

    try:
        if x is None:
            return default
        if isinstance(x, str) and not x.strip():
            return default
        value = float(x)
    except (TypeError, ValueError):
        return default
    return value if math.isfinite(value) else default


def nz_series(s):
    """Coerce a Series to numeric with missing or infinite values as ``0``."""

    if s is None:
        return 0.0
    out = pd.to_numeric(s, errors="coerce")
    return out.where(out.abs() != float("inf")).fillna(0.0)


def fmt_amount(value) -> str:
    """Group thousands and drop trailing zero decimals (``216000.0`` -> ``216,000``)."""

    text = f"{round(nz(value), 3):,.3f}"
    return text.rstrip("0").rstrip(".")
