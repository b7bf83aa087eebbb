"""Domain layer for buwis."""

# Resolved lazily: the services pull in the database layer, which imports
# domain modules in turn.
_EXPORTS = {
    "Money": "buwis.domain.money",
    "DigitalInvoice": "buwis.domain.invoice",
    "FilingSession": "buwis.domain.session",
    "SalesSummaryReport": "buwis.domain.summary",
    "build_summary": "buwis.domain.summary",
    "compute_breakdown": "buwis.domain.breakdown",
    "compute_income_tax": "buwis.domain.income_tax",
    "FilingService": "buwis.domain.filing",
    "TaxpayerService": "buwis.domain.taxpayer",
}

__all__ = list(_EXPORTS)


def __getattr__(name):
    if name in _EXPORTS:
        import importlib

        return getattr(importlib.import_module(_EXPORTS[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
