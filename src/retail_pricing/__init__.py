"""
Retail Pricing Package

Derives retail prices from vendor cost / MAP / MSRP figures using an
administrator-configured pricing rule, and manages vendor field-mapping contracts.
"""

__version__ = "1.0.0"
