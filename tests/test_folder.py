"""Tests for folders and the folder tree builder."""

from unittest.mock import patch

import pytest
from imapclient.exceptions import IMAPClientError

from imap_session.exceptions import ImapSessionError, ListingFailed
from imap_session.folder import (
    Folder,
    FolderAttribute,
    FolderTreeBuilder,
    decode_name,
    encode_name,
)
from imap_session.transport import Transport


class TestFolderAttribute:
    """Test mapping raw LIST flags."""

    def test_from_flags(self):
        """Test known flags map case-insensitively and unknown ones are dropped."""
        attributes = FolderAttribute.from_flags(
            (b"\\HasChildren", b"\\NoSelect", b"\\Sent", b"\\X-Custom")
        )

        assert attributes == frozenset(
            {FolderAttribute.HAS_CHILDREN, FolderAttribute.NO_SELECT, FolderAttribute.SENT}
        )

    def test_from_empty_flags(self):
        assert FolderAttribute.from_flags(()) == frozenset()


class TestFolder:
    """Test the Folder node."""

    def test_from_listing(self):
        """Test a folder keeps the encoded name and decodes for display."""
        folder = Folder.from_listing(((b"\\HasNoChildren",), b".", b"INBOX.Entw&APw-rfe"))

        assert folder.full_name == "INBOX.Entw&APw-rfe"
        assert folder.delimiter == "."
        assert folder.name == "Entwürfe"
        assert folder.display_name == "INBOX.Entwürfe"
        assert folder.has_children is False
        assert folder.children == []

    def test_nil_delimiter(self):
        """Test a flat namespace has no delimiter and a whole-name leaf."""
        folder = Folder.from_listing(((b"\\Noinferiors",), None, "Notes/2024"))

        assert folder.delimiter is None
        assert folder.name == "Notes/2024"
        assert folder.no_inferiors is True

    def test_flags(self):
        """Test attribute helpers check attributes by name."""
        folder = Folder(
            "[Gmail]",
            "/",
            {FolderAttribute.NO_SELECT, FolderAttribute.HAS_CHILDREN},
        )
        trash = Folder("[Gmail]/Trash", "/", {FolderAttribute.TRASH, FolderAttribute.MARKED})

        assert folder.no_select is True
        assert folder.has_children is True
        assert folder.special_use is None
        assert trash.special_use is FolderAttribute.TRASH
        assert trash.marked is True

    def test_unbound_folder(self):
        """Test a folder without a session has a bare path and cannot open."""
        folder = Folder("INBOX", "/")

        assert folder.session is None
        assert folder.path == "INBOX"
        with pytest.raises(ImapSessionError):
            folder.open()

    def test_walk(self):
        """Test walk yields depth first in child order."""
        urgent = Folder("INBOX/Work/Urgent", "/")
        work = Folder("INBOX/Work", "/", {FolderAttribute.HAS_CHILDREN}, children=[urgent])
        inbox = Folder("INBOX", "/", {FolderAttribute.HAS_CHILDREN}, children=[work])

        assert [f.full_name for f in inbox.walk()] == [
            "INBOX",
            "INBOX/Work",
            "INBOX/Work/Urgent",
        ]

    def test_name_codec(self):
        """Test modified UTF-7 encoding of names."""
        assert encode_name("Boîte & Co") == "Bo&AO4-te &- Co"
        assert decode_name("Bo&AO4-te &- Co") == "Boîte & Co"
        assert decode_name("Déjà") == "Déjà"


class TestFolderTreeBuilder:
    """Test listing folders."""

    @pytest.fixture
    def transport(self, session_config, mock_imap_client):
        transport = Transport(session_config)
        with patch("imapclient.IMAPClient", return_value=mock_imap_client):
            transport.connect()
        return transport

    def test_hierarchical_listing(self, transport, mock_imap_client, stub_tree_listing):
        """Test children are attached to folders flagged HasChildren."""
        mock_imap_client.list_folders.side_effect = stub_tree_listing

        folders = FolderTreeBuilder(transport).list_folders(True)

        assert [f.full_name for f in folders] == ["INBOX", "INBOX/Work"]
        inbox, work = folders
        assert inbox.children == []
        assert [c.full_name for c in work.children] == ["INBOX/Work/Urgent"]
        assert work.children[0].children == []
        assert [c.args for c in mock_imap_client.list_folders.call_args_list] == [
            ("", "%"),
            ("", "INBOX/Work/%"),
        ]

    def test_flat_listing(self, transport, mock_imap_client, stub_tree_listing):
        """Test flat listing keeps server order without children."""
        mock_imap_client.list_folders.side_effect = stub_tree_listing

        folders = FolderTreeBuilder(transport).list_folders(False)

        assert [f.full_name for f in folders] == ["INBOX", "INBOX/Work", "INBOX/Work/Urgent"]
        assert all(f.children == [] for f in folders)
        mock_imap_client.list_folders.assert_called_once_with("", "*")

    def test_listing_below_parent(self, transport, mock_imap_client, stub_tree_listing):
        """Test the parent prefix is prepended to the pattern."""
        mock_imap_client.list_folders.side_effect = stub_tree_listing

        folders = FolderTreeBuilder(transport).list_folders(True, "INBOX/Work/")

        assert [f.full_name for f in folders] == ["INBOX/Work/Urgent"]

    def test_empty_listing(self, transport, mock_imap_client):
        """Test a pattern matching nothing returns an empty list."""
        mock_imap_client.list_folders.return_value = []

        assert FolderTreeBuilder(transport).list_folders(True, "Nothing/") == []

    def test_parent_echo_is_skipped(self, transport, mock_imap_client):
        """Test a server echoing the parent does not recurse forever."""
        responses = {
            "%": [((b"\\HasChildren",), b"/", b"Projects")],
            "Projects/%": [
                ((b"\\HasChildren",), b"/", b"Projects"),
                ((b"\\HasNoChildren",), b"/", b"Projects/Alpha"),
            ],
        }
        mock_imap_client.list_folders.side_effect = lambda d, p: responses.get(p, [])

        folders = FolderTreeBuilder(transport).list_folders(True)

        assert [c.full_name for c in folders[0].children] == ["Projects/Alpha"]

    def test_prefix_without_delimiter_keeps_matching_folder(self, transport, mock_imap_client):
        """Test a folder named exactly like a bare prefix is part of the result."""
        inbox = ((b"\\HasChildren",), b"/", b"INBOX")
        work = ((b"\\HasNoChildren",), b"/", b"INBOX/Work")
        responses = {"INBOX*": [inbox, work], "INBOX%": [inbox], "INBOX/%": [work]}
        mock_imap_client.list_folders.side_effect = lambda d, p: responses.get(p, [])
        builder = FolderTreeBuilder(transport)

        flat = builder.list_folders(False, "INBOX")
        tree = builder.list_folders(True, "INBOX")

        assert [f.full_name for f in flat] == ["INBOX", "INBOX/Work"]
        assert [f.full_name for f in tree] == ["INBOX"]
        assert [c.full_name for c in tree[0].children] == ["INBOX/Work"]

    def test_listing_failure(self, transport, mock_imap_client):
        """Test a rejected LIST raises ListingFailed."""
        mock_imap_client.list_folders.side_effect = IMAPClientError("LIST command error: BAD")

        with pytest.raises(ListingFailed):
            FolderTreeBuilder(transport).list_folders()

    def test_listing_connects_on_demand(self, session_config, mock_imap_client):
        """Test listing on a disconnected transport connects first."""
        transport = Transport(session_config)

        with patch("imapclient.IMAPClient", return_value=mock_imap_client) as mock_client_class:
            FolderTreeBuilder(transport).list_folders()

            mock_client_class.assert_called_once()
        assert transport.is_connected() is True

    def test_child_names_extend_parent(self, transport, mock_imap_client, stub_tree_listing):
        """Test every child's full name is its parent's name plus delimiter."""
        mock_imap_client.list_folders.side_effect = stub_tree_listing

        for top in FolderTreeBuilder(transport).list_folders(True):
            for folder in top.walk():
                for child in folder.children:
                    assert child.full_name.startswith(folder.full_name + folder.delimiter)
