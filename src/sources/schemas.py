"""Data models for the sources module."""

from dataclasses import dataclass


@dataclass
class Source:
    """A tracked creator, scoped to one account.

    ``source_id`` is the creator's stable upstream id (Bilibili mid).
    Sources are created and deleted by the user; the sync pipeline only
    reads the active ones.
    """

    account_id: str
    source_id: int
    name: str = ""
    platform: str = "bilibili"
    is_active: bool = True
    id: int | None = None

    @property
    def label(self) -> str:
        """Display name, falling back to the upstream id."""
        return self.name or str(self.source_id)
