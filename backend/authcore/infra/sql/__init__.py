"""Relational storage adapters."""

from .sql_token_ledger import SqlTokenLedger
from .sql_user_directory import SqlUserDirectory

__all__ = ["SqlTokenLedger", "SqlUserDirectory"]
