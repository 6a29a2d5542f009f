"""
SecureOnline Banking Platform

Funds transfer service with atomic debit/credit pairs, fixed-point
Decimal money and domain events for every committed balance change.
"""

__version__ = "1.0.0"
