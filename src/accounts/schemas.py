"""Data models for the accounts module."""

from dataclasses import dataclass


@dataclass
class Account:
    """A registered user with an opaque upstream credential (cookie).

    The credential is owned by the user; the sync pipeline only reads it.
    """

    id: str
    credential: str | None = None

    @property
    def has_credential(self) -> bool:
        return bool(self.credential and self.credential.strip())
