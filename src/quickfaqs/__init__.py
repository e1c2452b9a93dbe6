"""
QuickFAQs billing core: entitlements, checkout, webhook reconciliation and
credit metering for the FAQ generation API.
"""

__version__ = "0.1.0"
