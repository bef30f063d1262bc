"""Value objects returned by mailbox status queries."""

from dataclasses import dataclass, field
from datetime import datetime
from email.utils import format_datetime
from typing import Any, List, Optional


@dataclass
class MailboxCheck:
    """Snapshot of the currently selected mailbox."""

    date: datetime
    driver: str
    mailbox: str
    messages: int
    recent: int

    def summary(self) -> str:
        """Return a summary of the snapshot."""
        return (
            f"Date: {format_datetime(self.date)}\n"
            f"Driver: {self.driver}\n"
            f"Mailbox: {self.mailbox}\n"
            f"Messages: {self.messages}\n"
            f"Recent: {self.recent}"
        )


@dataclass
class Quota:
    """Usage and limit of one quota resource (RFC 2087)."""

    root: str
    resource: str
    usage: int
    limit: int

    @classmethod
    def from_response(cls, item: Any) -> "Quota":
        """Create from an ``imapclient`` ``Quota`` tuple."""
        return cls(
            root=_text(item.quota_root),
            resource=_text(item.resource),
            usage=int(item.usage),
            limit=int(item.limit),
        )

    @property
    def percent_used(self) -> Optional[float]:
        if not self.limit:
            return None
        return 100.0 * self.usage / self.limit


@dataclass
class QuotaRoot:
    """Quota roots of a mailbox together with their quotas."""

    mailbox: str
    roots: List[str] = field(default_factory=list)
    quotas: List[Quota] = field(default_factory=list)

    @classmethod
    def from_response(cls, response: Any) -> "QuotaRoot":
        """Create from the ``(MailboxQuotaRoots, [Quota])`` pair of ``get_quota_root``."""
        mailbox_roots, quotas = response
        return cls(
            mailbox=_text(mailbox_roots.mailbox),
            roots=[_text(root) for root in mailbox_roots.quota_roots],
            quotas=[Quota.from_response(q) for q in quotas],
        )


def _text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)
