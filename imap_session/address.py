"""Server address construction."""

from dataclasses import dataclass

from imap_session.config import Encryption, SessionConfig

PROTOCOL = "imap"


@dataclass(frozen=True)
class ServerAddress:
    """Canonical connection address of an IMAP account.

    Renders as ``{host:port/imap[/novalidate-cert][/ssl|/tls]}``. The host and
    port are not validated here; a bad value only surfaces when connecting.
    """

    host: str
    port: int
    encryption: Encryption = Encryption.SSL
    validate_cert: bool = True

    @classmethod
    def from_config(cls, config: SessionConfig) -> "ServerAddress":
        """Build the address for a session configuration."""
        return cls(
            host=config.host,
            port=config.port,
            encryption=config.encryption,
            validate_cert=config.validate_cert,
        )

    def __str__(self) -> str:
        address = f"{{{self.host}:{self.port}/{PROTOCOL}"
        if not self.validate_cert:
            address += "/novalidate-cert"
        if self.encryption is Encryption.SSL:
            address += "/ssl"
        elif self.encryption is Encryption.TLS:
            address += "/tls"
        return address + "}"

    def mailbox(self, name: str) -> str:
        """Return the fully qualified path of mailbox *name* on this server."""
        return f"{self}{name}"
