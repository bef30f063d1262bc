"""Mailbox folders and folder tree construction."""

import logging
import weakref
from enum import Enum
from typing import TYPE_CHECKING, Any, FrozenSet, Iterable, List, Optional

from imapclient import imap_utf7

from imap_session.exceptions import ImapSessionError
from imap_session.transport import DEFAULT_ATTEMPTS, Transport

if TYPE_CHECKING:
    from imap_session.session import ImapSession

logger = logging.getLogger(__name__)


class FolderAttribute(Enum):
    """Mailbox name attributes of a LIST response (RFC 3501, 5258, 6154)."""

    HAS_CHILDREN = "\\HasChildren"
    HAS_NO_CHILDREN = "\\HasNoChildren"
    NO_SELECT = "\\Noselect"
    NO_INFERIORS = "\\Noinferiors"
    NON_EXISTENT = "\\NonExistent"
    SUBSCRIBED = "\\Subscribed"
    REMOTE = "\\Remote"
    MARKED = "\\Marked"
    UNMARKED = "\\Unmarked"
    # Special-use mailboxes
    ALL = "\\All"
    ARCHIVE = "\\Archive"
    DRAFTS = "\\Drafts"
    FLAGGED = "\\Flagged"
    JUNK = "\\Junk"
    SENT = "\\Sent"
    TRASH = "\\Trash"

    @classmethod
    def from_flags(cls, flags: Iterable[Any]) -> FrozenSet["FolderAttribute"]:
        """Map raw LIST flags to attributes, ignoring unknown ones."""
        attributes = set()
        for flag in flags or ():
            text = flag.decode("ascii", errors="replace") if isinstance(flag, bytes) else str(flag)
            attribute = _ATTRIBUTES_BY_NAME.get(text.lower())
            if attribute is None:
                logger.debug("Ignoring unknown folder attribute %s", text)
                continue
            attributes.add(attribute)
        return frozenset(attributes)


_ATTRIBUTES_BY_NAME = {attribute.value.lower(): attribute for attribute in FolderAttribute}

SPECIAL_USE = frozenset(
    {
        FolderAttribute.ALL,
        FolderAttribute.ARCHIVE,
        FolderAttribute.DRAFTS,
        FolderAttribute.FLAGGED,
        FolderAttribute.JUNK,
        FolderAttribute.SENT,
        FolderAttribute.TRASH,
    }
)


def encode_name(name: str) -> str:
    """Encode a folder name to IMAP modified UTF-7."""
    return imap_utf7.encode(name).decode("ascii")


def decode_name(name: str) -> str:
    """Decode an IMAP modified UTF-7 folder name for display."""
    try:
        raw = name.encode("ascii")
    except UnicodeEncodeError:
        # Server sent a raw UTF-8 name
        return name
    return imap_utf7.decode(raw)


class Folder:
    """One mailbox of the server namespace.

    ``full_name`` is kept in the encoded form the server uses so it can be
    fed back into LIST patterns and SELECT unchanged. Folders only hold a
    weak reference to the session that listed them.
    """

    def __init__(
        self,
        full_name: str,
        delimiter: Optional[str] = None,
        attributes: Iterable[FolderAttribute] = (),
        children: Optional[List["Folder"]] = None,
        session: Optional["ImapSession"] = None,
    ):
        self.full_name = full_name
        self.delimiter = delimiter or None
        self.attributes = frozenset(attributes)
        self.children: List[Folder] = list(children or [])
        self._session_ref = weakref.ref(session) if session is not None else None

    @classmethod
    def from_listing(cls, entry: Any, session: Optional["ImapSession"] = None) -> "Folder":
        """Create a folder from one ``(flags, delimiter, name)`` LIST entry."""
        flags, delimiter, name = entry
        if isinstance(delimiter, bytes):
            delimiter = delimiter.decode("ascii", errors="replace")
        if isinstance(name, bytes):
            name = name.decode("utf-8", errors="replace")
        return cls(
            full_name=str(name),
            delimiter=delimiter,
            attributes=FolderAttribute.from_flags(flags),
            session=session,
        )

    @property
    def session(self) -> Optional["ImapSession"]:
        if self._session_ref is None:
            return None
        return self._session_ref()

    @property
    def name(self) -> str:
        """Decoded last segment of the full name."""
        leaf = self.full_name
        if self.delimiter and self.delimiter in leaf:
            leaf = leaf.rsplit(self.delimiter, 1)[1]
        return decode_name(leaf)

    @property
    def display_name(self) -> str:
        return decode_name(self.full_name)

    @property
    def path(self) -> str:
        """Full name qualified with the server address."""
        session = self.session
        if session is None:
            return self.full_name
        return session.address.mailbox(self.full_name)

    @property
    def has_children(self) -> bool:
        return FolderAttribute.HAS_CHILDREN in self.attributes

    @property
    def no_select(self) -> bool:
        return (
            FolderAttribute.NO_SELECT in self.attributes
            or FolderAttribute.NON_EXISTENT in self.attributes
        )

    @property
    def no_inferiors(self) -> bool:
        return FolderAttribute.NO_INFERIORS in self.attributes

    @property
    def marked(self) -> bool:
        return FolderAttribute.MARKED in self.attributes

    @property
    def special_use(self) -> Optional[FolderAttribute]:
        for attribute in self.attributes:
            if attribute in SPECIAL_USE:
                return attribute
        return None

    def walk(self) -> Iterable["Folder"]:
        """Yield this folder and all its descendants, depth first."""
        yield self
        for child in self.children:
            yield from child.walk()

    def open(self, attempts: int = DEFAULT_ATTEMPTS) -> None:
        """Select this folder on the owning session."""
        session = self.session
        if session is None:
            raise ImapSessionError(f"Folder {self.full_name} is not bound to a session")
        session.open_folder(self, attempts)

    def __repr__(self) -> str:
        attributes = ", ".join(sorted(a.value for a in self.attributes))
        return (
            f"<Folder {self.full_name!r} delimiter={self.delimiter!r} "
            f"attributes=[{attributes}] children={len(self.children)}>"
        )


class FolderTreeBuilder:
    """Builds folder lists and trees from LIST responses."""

    def __init__(self, transport: Transport, session: Optional["ImapSession"] = None):
        self.transport = transport
        self._session_ref = weakref.ref(session) if session is not None else None

    def list_folders(self, hierarchical: bool = True, parent_path: str = "") -> List[Folder]:
        """List folders below *parent_path*.

        In hierarchical mode one level is listed with ``%`` and folders
        flagged ``\\HasChildren`` get their own level attached as children.
        Otherwise ``*`` returns every descendant as a flat list. Server order
        is kept and an empty match is an empty list.

        Args:
            hierarchical: Build a tree instead of a flat list
            parent_path: Encoded name prefix, including its trailing delimiter

        Raises:
            ConnectionFailed: If the connection cannot be established
            ListingFailed: If the server rejects the LIST command
        """
        parent_path = parent_path or ""
        self.transport.check_connection()
        pattern = parent_path + ("%" if hierarchical else "*")
        session = self._session_ref() if self._session_ref is not None else None

        entries = self.transport.list_mailboxes(pattern)
        logger.debug("LIST %r returned %d entries", pattern, len(entries))

        folders: List[Folder] = []
        for entry in entries:
            folder = Folder.from_listing(entry, session=session)
            if _echoes_parent(folder, parent_path):
                continue
            if hierarchical and folder.has_children and folder.delimiter:
                folder.children = self.list_folders(True, folder.full_name + folder.delimiter)
            folders.append(folder)
        return folders


def _echoes_parent(folder: Folder, parent_path: str) -> bool:
    if not parent_path:
        return False
    # Some servers answer "parent/%" with the parent itself
    return bool(folder.delimiter) and folder.full_name + folder.delimiter == parent_path
