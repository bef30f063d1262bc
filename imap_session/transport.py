"""Connection lifecycle of a single IMAP account."""

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Type

import imapclient
from imapclient.exceptions import IMAPClientAbortError, IMAPClientError, LoginError

from imap_session.address import PROTOCOL, ServerAddress
from imap_session.config import Encryption, SessionConfig, create_ssl_context
from imap_session.exceptions import (
    AuthenticationFailed,
    ConnectionFailed,
    ListingFailed,
    MailboxOperationFailed,
    OperationRequiresConnection,
)
from imap_session.models import MailboxCheck, Quota, QuotaRoot

logger = logging.getLogger(__name__)

DEFAULT_ATTEMPTS = 3
ALERT_PREFIX = "[ALERT]"

# Socket level failures and server BYE/aborts leave the handle unusable.
_CONNECTION_ERRORS = (IMAPClientAbortError, OSError)


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


class Diagnostics:
    """Pending alerts and errors of one transport.

    Kept per transport so that several sessions in one process never see
    each other's diagnostics.
    """

    def __init__(self) -> None:
        self._alerts: List[str] = []
        self._errors: List[str] = []
        self._last_error: Optional[str] = None

    def record_alert(self, message: str) -> None:
        self._alerts.append(message)

    def record_error(self, message: str) -> None:
        self._errors.append(message)
        self._last_error = message

    def alerts(self) -> List[str]:
        """Return and clear the pending alerts."""
        alerts, self._alerts = self._alerts, []
        return alerts

    def errors(self) -> List[str]:
        """Return and clear the pending errors."""
        errors, self._errors = self._errors, []
        return errors

    def last_error(self) -> Optional[str]:
        """Return the most recent error, pending or not."""
        return self._last_error


class Transport:
    """Owns the ``imapclient.IMAPClient`` handle of a session.

    The handle exists iff the state is ``CONNECTED``. ``generation`` is bumped
    on every successful connect so that holders of per-connection state (the
    selected folder) can tell a reconnect happened.

    Not thread safe: one transport per thread.
    """

    def __init__(self, config: SessionConfig):
        self.config = config
        self.address = ServerAddress.from_config(config)
        self.client: Optional[imapclient.IMAPClient] = None
        self.state = ConnectionState.DISCONNECTED
        self.generation = 0
        self.mailbox: Optional[str] = None
        self.diagnostics = Diagnostics()
        self._read_only = config.read_only
        self._exists = 0
        self._recent = 0

    def is_connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED

    def is_read_only(self) -> bool:
        return self._read_only

    def set_read_only(self, read_only: bool = True) -> None:
        """Set the mode used by future mailbox selections.

        The currently selected mailbox keeps the mode it was opened with
        until it is selected again.
        """
        self._read_only = read_only

    def check_connection(self) -> None:
        """Connect with the default number of attempts when disconnected."""
        if not self.is_connected():
            self.connect()

    def connect(self, attempts: int = DEFAULT_ATTEMPTS) -> None:
        """Open a new connection, closing the current one first.

        Args:
            attempts: Number of tries before giving up

        Raises:
            AuthenticationFailed: If the server rejects the credentials
            ConnectionFailed: If no attempt succeeds
        """
        self.disconnect()
        attempts = max(1, attempts)
        last_error: Optional[Exception] = None

        for attempt in range(1, attempts + 1):
            try:
                client, info = self._open()
            except LoginError as e:
                self.diagnostics.record_error(str(e))
                logger.warning(
                    "Authentication as %s on %s rejected", self.config.username, self.address
                )
                raise AuthenticationFailed(
                    self._failure_message(e), details=self._details()
                ) from e
            except (IMAPClientError, OSError) as e:
                last_error = e
                self.diagnostics.record_error(str(e))
                logger.warning(
                    "Connection attempt %d/%d to %s failed: %s",
                    attempt,
                    attempts,
                    self.address,
                    e,
                )
                continue

            self.client = client
            self.state = ConnectionState.CONNECTED
            self.generation += 1
            self._store_selection(self.config.default_mailbox, info)
            logger.info(
                "Connected to %s as %s (read-only: %s)",
                self.address,
                self.config.username,
                self._read_only,
            )
            return

        raise ConnectionFailed(
            self._failure_message(last_error), details=self._details(attempts=attempts)
        ) from last_error

    def disconnect(self) -> None:
        """Close the connection, expunging the selected mailbox.

        Close failures are logged and never keep the transport connected.
        """
        if not self.is_connected():
            return

        client = self.client
        selected = self.mailbox
        self._drop()

        try:
            if selected is not None:
                # CLOSE purges \Deleted messages of a read-write mailbox
                client.close_folder()
        except Exception as e:
            self.diagnostics.record_error(str(e))
            logger.warning("Error closing mailbox %s: %s", selected, e)
        try:
            client.logout()
        except Exception as e:
            self.diagnostics.record_error(str(e))
            logger.warning("Error logging out from %s: %s", self.address, e)
        else:
            logger.info("Disconnected from %s", self.address)

    def reopen(self, mailbox: str, attempts: int = DEFAULT_ATTEMPTS) -> Dict[bytes, Any]:
        """Select *mailbox* with the current read-only mode.

        Raises:
            OperationRequiresConnection: If not connected
            ConnectionFailed: If every attempt fails or the connection drops
        """
        client = self._require_client()
        attempts = max(1, attempts)
        last_error: Optional[Exception] = None

        for attempt in range(1, attempts + 1):
            try:
                info = client.select_folder(mailbox, readonly=self._read_only)
            except _CONNECTION_ERRORS as e:
                self.diagnostics.record_error(str(e))
                self._lose(client)
                raise ConnectionFailed(
                    f"Connection lost while opening {mailbox}: {e}",
                    details=self._details(mailbox=mailbox),
                ) from e
            except IMAPClientError as e:
                last_error = e
                self.diagnostics.record_error(str(e))
                # A failed SELECT leaves no mailbox selected
                self.mailbox = None
                logger.warning(
                    "Opening %s failed (attempt %d/%d): %s", mailbox, attempt, attempts, e
                )
                continue
            finally:
                self._harvest_alerts(client)

            self._store_selection(mailbox, info)
            logger.debug(
                "Opened %s (%s)", mailbox, "read-only" if self._read_only else "read-write"
            )
            return info

        raise ConnectionFailed(
            self._failure_message(last_error),
            details=self._details(mailbox=mailbox, attempts=attempts),
        ) from last_error

    def list_mailboxes(self, pattern: str) -> List[Tuple[Any, Any, Any]]:
        """Issue ``LIST "" <pattern>`` and return the raw entries."""
        return self._call("LIST", "list_folders", "", pattern, error=ListingFailed)

    def create_mailbox(self, encoded_name: str) -> None:
        self._call("CREATE", "create_folder", encoded_name)

    def num_messages(self) -> int:
        self._refresh_counts()
        return self._exists

    def num_recent(self) -> int:
        self._refresh_counts()
        return self._recent

    def get_quota(self, mailbox: str) -> List[Quota]:
        quotas = self._call("GETQUOTA", "get_quota", mailbox)
        return [Quota.from_response(q) for q in quotas]

    def get_quota_root(self, mailbox: str) -> QuotaRoot:
        return QuotaRoot.from_response(self._call("GETQUOTAROOT", "get_quota_root", mailbox))

    def expunge(self) -> None:
        self._call("EXPUNGE", "expunge")

    def check(self) -> MailboxCheck:
        """Return a snapshot of the selected mailbox."""
        self._refresh_counts()
        return MailboxCheck(
            date=datetime.now().astimezone(),
            driver=PROTOCOL,
            mailbox=self.address.mailbox(self.mailbox or ""),
            messages=self._exists,
            recent=self._recent,
        )

    def _open(self) -> Tuple[imapclient.IMAPClient, Dict[bytes, Any]]:
        """Create, authenticate and prime a new client."""
        config = self.config
        ssl_context = None
        if config.encryption is not Encryption.NONE:
            ssl_context = create_ssl_context(config.validate_cert, config.tls_ca_bundle)

        client = imapclient.IMAPClient(
            config.host,
            port=config.port,
            ssl=config.encryption is Encryption.SSL,
            ssl_context=ssl_context if config.encryption is Encryption.SSL else None,
            timeout=config.timeout,
        )
        try:
            if config.encryption is Encryption.TLS:
                client.starttls(ssl_context)
            # Folder names are encoded explicitly by the callers
            client.folder_encode = False
            client.login(config.username, config.password)
            info = client.select_folder(config.default_mailbox, readonly=self._read_only)
        except Exception:
            self._discard(client)
            raise
        self._harvest_alerts(client)
        return client, info

    def _discard(self, client: imapclient.IMAPClient) -> None:
        try:
            client.logout()
        except Exception as e:
            logger.debug("Ignoring logout error on failed connection: %s", e)

    def _lose(self, client: imapclient.IMAPClient) -> None:
        """Close the socket of a broken connection without a LOGOUT round trip."""
        self._drop()
        try:
            client.shutdown()
        except Exception as e:
            logger.debug("Ignoring shutdown error on lost connection: %s", e)

    def _drop(self) -> None:
        self.client = None
        self.state = ConnectionState.DISCONNECTED
        self.mailbox = None
        self._exists = 0
        self._recent = 0

    def _require_client(self) -> imapclient.IMAPClient:
        if self.client is None:
            raise OperationRequiresConnection(details=self._details())
        return self.client

    def _call(
        self,
        operation: str,
        method: str,
        *args: Any,
        error: Type[MailboxOperationFailed] = MailboxOperationFailed,
    ) -> Any:
        """Run a client method, translating ``imapclient`` errors."""
        client = self._require_client()
        try:
            return getattr(client, method)(*args)
        except _CONNECTION_ERRORS as e:
            self.diagnostics.record_error(str(e))
            self._lose(client)
            raise ConnectionFailed(
                f"Connection lost during {operation}: {e}", details=self._details()
            ) from e
        except IMAPClientError as e:
            self.diagnostics.record_error(str(e))
            raise error(
                f"{operation} failed: {e}", details=self._details(operation=operation)
            ) from e
        finally:
            self._harvest_alerts(client)

    def _store_selection(self, mailbox: str, info: Dict[bytes, Any]) -> None:
        self.mailbox = mailbox
        self._exists = int(info.get(b"EXISTS", 0))
        self._recent = int(info.get(b"RECENT", 0))

    def _refresh_counts(self) -> None:
        """Poll the server with NOOP and apply EXISTS/RECENT/EXPUNGE updates."""
        _, responses = self._call("NOOP", "noop")
        for item in responses or []:
            if not isinstance(item, tuple) or len(item) < 2:
                continue
            count, kind = item[0], item[1]
            if kind == b"EXISTS":
                self._exists = int(count)
            elif kind == b"RECENT":
                self._recent = int(count)
            elif kind == b"EXPUNGE":
                self._exists = max(0, self._exists - 1)

    def _harvest_alerts(self, client: Optional[imapclient.IMAPClient] = None) -> None:
        """Move ``[ALERT]`` response texts into the diagnostics."""
        client = client or self.client
        imap = getattr(client, "_imap", None)
        untagged = getattr(imap, "untagged_responses", None)
        if not isinstance(untagged, dict):
            return
        for kind in ("OK", "NO", "BAD"):
            lines = untagged.get(kind)
            if not lines:
                continue
            remaining = []
            for line in lines:
                text = line.decode("utf-8", errors="replace") if isinstance(line, bytes) else line
                if isinstance(text, str) and text.upper().startswith(ALERT_PREFIX):
                    alert = text[len(ALERT_PREFIX):].strip()
                    self.diagnostics.record_alert(alert)
                    logger.warning("Server alert from %s: %s", self.address, alert)
                else:
                    remaining.append(line)
            if remaining:
                untagged[kind] = remaining
            else:
                del untagged[kind]

    def _failure_message(self, error: Optional[Exception]) -> str:
        message = str(error) if error is not None else "No connection attempt made"
        pending = [e for e in self.diagnostics.errors() if e != message]
        if pending:
            message = f"{message}. {'; '.join(pending)}"
        return message

    def _details(self, **extra: Any) -> Dict[str, Any]:
        details: Dict[str, Any] = {"server": str(self.address)}
        details.update(extra)
        return details
