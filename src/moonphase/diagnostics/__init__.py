"""Diagnostics package.

- residuals: per-year full moon residuals against reference data
  (plotting needs the diagnostics extra: matplotlib)
"""

__all__ = ["residuals"]
