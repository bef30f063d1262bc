"""Client-side IMAP session management."""

from imap_session.address import ServerAddress
from imap_session.config import Encryption, SessionConfig, load_config
from imap_session.exceptions import (
    AuthenticationFailed,
    ConnectionFailed,
    ImapSessionError,
    ListingFailed,
    MailboxOperationFailed,
    OperationRequiresConnection,
)
from imap_session.folder import Folder, FolderAttribute
from imap_session.models import MailboxCheck, Quota, QuotaRoot
from imap_session.session import ImapSession
from imap_session.transport import ConnectionState

__version__ = "0.1.0"

__all__ = [
    "AuthenticationFailed",
    "ConnectionFailed",
    "ConnectionState",
    "Encryption",
    "Folder",
    "FolderAttribute",
    "ImapSession",
    "ImapSessionError",
    "ListingFailed",
    "MailboxCheck",
    "MailboxOperationFailed",
    "OperationRequiresConnection",
    "Quota",
    "QuotaRoot",
    "ServerAddress",
    "SessionConfig",
    "load_config",
]
