"""Redis storage adapters."""

from .redis_token_ledger import RedisTokenLedger

__all__ = ["RedisTokenLedger"]
