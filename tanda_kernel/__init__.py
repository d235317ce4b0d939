"""
Tanda Kernel - shared ledger primitives for the scheduled reconciliation jobs.

Leaf components with no dependency on any job:
- Integer-cents money type
- Wallet balance mutation and audit-trail writer
- Append-only job log
- Typed exceptions and structured logging
"""

__version__ = "0.1.0"
