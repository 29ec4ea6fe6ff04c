"""
Ledger Kernel

Transactional ledger and reconciliation engine for multi-warehouse retail:
- Append-only stock movements with derived per-warehouse stock levels
- Payments applied to orders with derived paid/due/status balances
- Idempotency keys and a similarity window against duplicate submissions
- One database transaction per operation, all-or-nothing
"""

__version__ = "0.1.0"
