"""Single active mailbox tracking."""

import logging
from typing import TYPE_CHECKING, Optional

from imap_session.transport import DEFAULT_ATTEMPTS, Transport

if TYPE_CHECKING:
    from imap_session.folder import Folder

logger = logging.getLogger(__name__)


class MailboxSelector:
    """Keeps at most one folder open on a transport.

    The active folder is tied to the connection it was selected on; after a
    disconnect or reconnect there is no active folder until one is opened
    again.
    """

    def __init__(self, transport: Transport):
        self.transport = transport
        self._active: Optional["Folder"] = None
        self._generation: Optional[int] = None

    @property
    def active_folder(self) -> Optional["Folder"]:
        if self._active is None or not self.transport.is_connected():
            return None
        if self._generation != self.transport.generation:
            return None
        return self._active

    def open_folder(self, folder: "Folder", attempts: int = DEFAULT_ATTEMPTS) -> None:
        """Select *folder* unless it is already the active one.

        Identity decides, not the name: another ``Folder`` object for the same
        mailbox is selected again. If the select fails the previous active
        folder is kept.

        Raises:
            ConnectionFailed: If connecting or selecting fails
        """
        self.transport.check_connection()
        if folder is self.active_folder:
            logger.debug("%s is already open", folder.full_name)
            return

        self.transport.reopen(folder.full_name, attempts)
        self._active = folder
        self._generation = self.transport.generation
