"""Flat-file (JSON) storage adapters."""

from .file_token_ledger import FileTokenLedger
from .file_user_directory import FileUserDirectory
from .json_store import JsonFileStore

__all__ = ["FileTokenLedger", "FileUserDirectory", "JsonFileStore"]
