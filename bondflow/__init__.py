"""
BondFlow — Check-in verification and back-office services for a bail-bond agency.

Architecture: Location + Photo capture → Verification → Append-only audit log
Philosophy:  The flow decides when a record exists. The store never changes one.
"""

__version__ = "1.0.0"
