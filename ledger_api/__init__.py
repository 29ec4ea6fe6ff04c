"""HTTP boundary for the retail ledger."""

from ledger_api.app import create_app

__all__ = ["create_app"]
