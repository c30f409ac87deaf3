"""Class Finance Domain Engine - pricing and financial rollups for training classes.

This package provides the calculation core behind the back-office finance
dashboards:
- Discount rules (percentage, fixed amount, buy N pay M)
- Per-seat pricing with VAT and seat totals
- Rollups by class, company, channel, participant type and month
- Receivables aging and promotion performance

The domain layer is designed to be:
- Framework-agnostic (no ORM, no web dependencies)
- Testable (pure Python with Pydantic validation)
- Pure (callers load and filter registrations, the engine only computes)
"""

from .schemas import *  # noqa: F403, F401

__version__ = "0.1.0"
