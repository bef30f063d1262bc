"""Client facing IMAP session."""

import logging
import weakref
from typing import Iterable, List, Optional

import imapclient

from imap_session.address import ServerAddress
from imap_session.config import SessionConfig
from imap_session.exceptions import MailboxOperationFailed
from imap_session.folder import Folder, FolderAttribute, FolderTreeBuilder, encode_name
from imap_session.models import MailboxCheck, Quota, QuotaRoot
from imap_session.selector import MailboxSelector
from imap_session.transport import DEFAULT_ATTEMPTS, Transport

logger = logging.getLogger(__name__)


class ImapSession:
    """One authenticated connection to an IMAP account.

    Every operation that needs the server connects on demand. The session is
    not safe for concurrent use; give each thread its own session.

    The read-only flag only affects mailboxes opened after it is changed:
    call :meth:`open_folder` again to apply it to the current folder.

    The connection is closed on :meth:`close`, when leaving a ``with`` block
    and when the session is garbage collected.
    """

    def __init__(self, config: SessionConfig):
        self.config = config
        self.transport = Transport(config)
        self.selector = MailboxSelector(self.transport)
        self.tree_builder = FolderTreeBuilder(self.transport, self)
        self._finalizer = weakref.finalize(self, self.transport.disconnect)

    def __enter__(self) -> "ImapSession":
        self.check_connection()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()

    def close(self) -> None:
        self.disconnect()

    @property
    def address(self) -> ServerAddress:
        return self.transport.address

    @property
    def connection(self) -> Optional[imapclient.IMAPClient]:
        """The underlying ``IMAPClient``, ``None`` while disconnected."""
        return self.transport.client

    @property
    def active_folder(self) -> Optional[Folder]:
        return self.selector.active_folder

    def connect(self, attempts: int = DEFAULT_ATTEMPTS) -> None:
        """Connect to the server, replacing any existing connection.

        Raises:
            AuthenticationFailed: If the credentials are rejected
            ConnectionFailed: If the server cannot be reached
        """
        self.transport.connect(attempts)

    def disconnect(self) -> None:
        self.transport.disconnect()

    def check_connection(self) -> None:
        self.transport.check_connection()

    def is_connected(self) -> bool:
        return self.transport.is_connected()

    def set_read_only(self, read_only: bool = True) -> None:
        """Set the mode for mailboxes opened from now on.

        The active folder is not reopened.
        """
        self.transport.set_read_only(read_only)

    def is_read_only(self) -> bool:
        return self.transport.is_read_only()

    def get_folder(
        self,
        name: str,
        attributes: Optional[Iterable[FolderAttribute]] = None,
        delimiter: Optional[str] = None,
    ) -> Folder:
        """Return a folder handle for *name* without asking the server.

        Args:
            name: Unencoded folder name
            attributes: Defaults to ``{HAS_NO_CHILDREN}``
            delimiter: Defaults to the configured delimiter
        """
        if attributes is None:
            attributes = {FolderAttribute.HAS_NO_CHILDREN}
        return Folder(
            full_name=encode_name(name),
            delimiter=delimiter or self.config.delimiter,
            attributes=attributes,
            session=self,
        )

    def get_folders(self, hierarchical: bool = True, parent_folder: Optional[str] = None) -> List[Folder]:
        """List folders as a tree (*hierarchical*) or as a flat list.

        Args:
            hierarchical: Attach children to folders that have any
            parent_folder: Encoded prefix to list below, e.g. ``"INBOX/"``
        """
        return self.tree_builder.list_folders(hierarchical, parent_folder or "")

    def open_folder(self, folder: Folder, attempts: int = DEFAULT_ATTEMPTS) -> None:
        self.selector.open_folder(folder, attempts)

    def create_folder(self, name: str) -> bool:
        """Create folder *name*, returning whether the server accepted it."""
        self.check_connection()
        encoded = encode_name(name)
        try:
            self.transport.create_mailbox(encoded)
        except MailboxOperationFailed as e:
            logger.warning("Could not create folder %s: %s", name, e)
            return False
        logger.info("Created folder %s", name)
        return True

    def count_messages(self) -> int:
        """Number of messages in the selected mailbox."""
        self.check_connection()
        return self.transport.num_messages()

    def count_recent_messages(self) -> int:
        self.check_connection()
        return self.transport.num_recent()

    def get_quota(self, mailbox: Optional[str] = None) -> List[Quota]:
        """Quotas that apply to *mailbox* (the default mailbox when omitted)."""
        self.check_connection()
        return self.transport.get_quota(mailbox or self.config.default_mailbox)

    def get_quota_root(self, mailbox: Optional[str] = None) -> QuotaRoot:
        """Quota roots of *mailbox* (the default mailbox when omitted)."""
        self.check_connection()
        return self.transport.get_quota_root(mailbox or self.config.default_mailbox)

    def get_alerts(self) -> List[str]:
        return self.transport.diagnostics.alerts()

    def get_errors(self) -> List[str]:
        return self.transport.diagnostics.errors()

    def get_last_error(self) -> Optional[str]:
        return self.transport.diagnostics.last_error()

    def expunge(self) -> bool:
        """Permanently remove messages flagged ``\\Deleted`` in the selected mailbox."""
        self.check_connection()
        self.transport.expunge()
        return True

    def check_current_mailbox(self) -> MailboxCheck:
        self.check_connection()
        return self.transport.check()
