"""
Accounting Kernel - invoice lifecycle and monetary calculation engine.

A multi-branch back-office core with:
- Line-level monetary derivation under a fixed away-from-zero rounding policy
- Diff-based reconciliation of invoice lines on update (soft delete)
- Stock movement synchronization tied to invoice and item type
- Invoice, contact and cash/bank account balance recalculation
- Optimistic concurrency on every mutable aggregate
"""

__version__ = "0.1.0"
