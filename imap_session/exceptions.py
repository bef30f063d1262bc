"""Errors raised by an IMAP session."""

from typing import Any, Dict, Optional


class ImapSessionError(Exception):
    """Base exception for all session errors."""

    default_message = "IMAP session error"

    def __init__(
        self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None
    ):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the error to a dictionary."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class ConnectionFailed(ImapSessionError):
    """Opening, reopening or keeping the connection failed."""

    default_message = "Failed to connect to IMAP server"


class AuthenticationFailed(ConnectionFailed):
    """The server rejected the credentials."""

    default_message = "IMAP authentication failed"


class OperationRequiresConnection(ConnectionFailed):
    """A transport command was issued without a live connection."""

    default_message = "Operation requires an open IMAP connection"


class MailboxOperationFailed(ImapSessionError):
    """The server rejected a mailbox command."""

    default_message = "IMAP mailbox operation failed"


class ListingFailed(MailboxOperationFailed):
    """A LIST request could not be completed."""

    default_message = "Failed to list IMAP folders"
