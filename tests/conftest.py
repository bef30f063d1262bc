"""Shared fixtures for the session tests."""

from unittest.mock import MagicMock

import pytest

from imap_session.config import Encryption, SessionConfig


@pytest.fixture
def session_config():
    """Plain SSL configuration for imap.example.com."""
    return SessionConfig(
        host="imap.example.com",
        port=993,
        username="test@example.com",
        password="password",
        encryption=Encryption.SSL,
    )


@pytest.fixture
def mock_imap_client():
    """A mocked ``imapclient.IMAPClient`` instance."""
    client = MagicMock()
    client._imap.untagged_responses = {}
    client.select_folder.return_value = {b"EXISTS": 10, b"RECENT": 2}
    client.noop.return_value = (b"NOOP completed", [])
    client.list_folders.return_value = []
    return client


@pytest.fixture
def stub_tree_listing():
    """LIST responses for INBOX, INBOX/Work and INBOX/Work/Urgent, keyed by pattern."""
    inbox = ((b"\\HasNoChildren",), b"/", b"INBOX")
    work = ((b"\\HasChildren",), b"/", b"INBOX/Work")
    urgent = ((b"\\HasNoChildren",), b"/", b"INBOX/Work/Urgent")
    responses = {
        "%": [inbox, work],
        "INBOX/Work/%": [urgent],
        "*": [inbox, work, urgent],
    }

    def list_folders(directory, pattern):
        return responses.get(pattern, [])

    return list_folders
