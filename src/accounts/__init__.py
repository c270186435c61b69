"""Accounts: registered users and their upstream credentials."""

from src.accounts.repository import AccountRepository
from src.accounts.schemas import Account

__all__ = [
    "Account",
    "AccountRepository",
]
