"""Configuration handling for IMAP sessions."""

import logging
import os
import ssl
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

logger = logging.getLogger(__name__)

DEFAULT_DELIMITER = "/"
DEFAULT_MAILBOX = "INBOX"


def _maybe_load_dotenv() -> None:
    """Load .env file only when explicitly opted in via IMAP_SESSION_LOAD_DOTENV=true."""
    if os.environ.get("IMAP_SESSION_LOAD_DOTENV", "").lower() == "true":
        from dotenv import load_dotenv

        load_dotenv()
        logger.warning(
            ".env file loaded (IMAP_SESSION_LOAD_DOTENV=true), "
            "disable in production"
        )


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


class Encryption(str, Enum):
    """Transport encryption of the IMAP connection."""

    NONE = "none"
    SSL = "ssl"
    TLS = "tls"

    @classmethod
    def parse(cls, value: Union["Encryption", str, bool, None]) -> "Encryption":
        """Coerce a configuration value to an :class:`Encryption` member.

        Accepts members, their string values (case-insensitive, ``starttls``
        is an alias of ``tls``) and booleans for the older ``use_ssl`` style.

        Raises:
            ValueError: If the value names no known mode.
        """
        if isinstance(value, cls):
            return value
        if value is None or value is False:
            return cls.NONE
        if value is True:
            return cls.SSL
        normalised = str(value).strip().lower()
        if normalised == "starttls":
            return cls.TLS
        try:
            return cls(normalised)
        except ValueError:
            raise ValueError(
                f"Unsupported encryption '{value}' (expected none, ssl or tls)"
            ) from None


def create_ssl_context(
    validate_cert: bool = True, ca_bundle: Optional[str] = None
) -> ssl.SSLContext:
    """Create an SSL context for the IMAP connection.

    Certificate verification stays enabled unless *validate_cert* is
    explicitly false, in which case a warning is logged.

    Args:
        validate_cert: Whether the server certificate must be verified.
        ca_bundle: Path to a custom CA bundle file (PEM format).
            If None, uses the system default certificate store.

    Returns:
        Configured SSL context.

    Raises:
        FileNotFoundError: If the specified CA bundle file does not exist.
        ssl.SSLError: If the CA bundle file cannot be loaded.
    """
    context = ssl.create_default_context()
    if ca_bundle:
        bundle_path = Path(ca_bundle)
        if not bundle_path.exists():
            raise FileNotFoundError(f"TLS CA bundle file not found: {ca_bundle}")
        context.load_verify_locations(ca_bundle)
        logger.info("Loaded custom CA bundle: %s", ca_bundle)
    if not validate_cert:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
        logger.warning("Server certificate validation is disabled")
    return context


@dataclass
class SessionConfig:
    """IMAP account and session settings."""

    host: str
    port: int
    username: str
    password: str
    encryption: Encryption = Encryption.SSL
    validate_cert: bool = True
    read_only: bool = False
    delimiter: str = DEFAULT_DELIMITER
    default_mailbox: str = DEFAULT_MAILBOX
    tls_ca_bundle: Optional[str] = None
    timeout: Optional[float] = None

    def __post_init__(self) -> None:
        self.encryption = Encryption.parse(self.encryption)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionConfig":
        """Create configuration from dictionary.

        Password is resolved exclusively from the IMAP_PASSWORD environment
        variable. The 'password' key in config dict is ignored.
        """
        if data.get("password"):
            logger.warning(
                "Ignoring 'password' in IMAP config, "
                "use IMAP_PASSWORD environment variable instead"
            )

        password = os.environ.get("IMAP_PASSWORD")
        if not password:
            raise ValueError(
                "IMAP password must be specified via IMAP_PASSWORD environment variable"
            )

        encryption = Encryption.parse(data.get("encryption", Encryption.SSL))
        tls_ca_bundle = (
            os.environ.get("IMAP_TLS_CA_BUNDLE") or data.get("tls_ca_bundle") or None
        )
        timeout = data.get("timeout")

        return cls(
            host=data["host"],
            port=int(data.get("port", 993 if encryption is Encryption.SSL else 143)),
            username=data["username"],
            password=password,
            encryption=encryption,
            validate_cert=_as_bool(data.get("validate_cert", True)),
            read_only=_as_bool(data.get("read_only", False)),
            delimiter=data.get("delimiter") or DEFAULT_DELIMITER,
            default_mailbox=data.get("default_mailbox") or DEFAULT_MAILBOX,
            tls_ca_bundle=tls_ca_bundle,
            timeout=float(timeout) if timeout is not None else None,
        )


def load_config(config_path: Optional[str] = None) -> SessionConfig:
    """Load configuration from file or environment variables.

    Args:
        config_path: Path to configuration file

    Returns:
        Session configuration

    Raises:
        ValueError: If configuration is invalid
    """
    _maybe_load_dotenv()

    # Default locations to check for config file
    default_locations = [
        Path("config.yaml"),
        Path("config.yml"),
        Path("~/.config/imap-session/config.yaml"),
        Path("/etc/imap-session/config.yaml"),
    ]

    config_data: Dict[str, Any] = {}
    if config_path:
        try:
            with open(config_path, "r") as f:
                config_data = yaml.safe_load(f) or {}
            logger.info("Loaded configuration from %s", config_path)
        except FileNotFoundError:
            logger.warning("Configuration file not found: %s", config_path)
    else:
        for path in default_locations:
            expanded_path = path.expanduser()
            if expanded_path.exists():
                with open(expanded_path, "r") as f:
                    config_data = yaml.safe_load(f) or {}
                logger.info("Loaded configuration from %s", expanded_path)
                break

    if not config_data:
        logger.info("No configuration file found, using environment variables")
        if not os.environ.get("IMAP_HOST"):
            raise ValueError(
                "No configuration file found and IMAP_HOST environment variable not set"
            )

        encryption = os.environ.get("IMAP_ENCRYPTION", "ssl")
        config_data = {
            "imap": {
                "host": os.environ.get("IMAP_HOST"),
                "port": int(
                    os.environ.get(
                        "IMAP_PORT",
                        "993" if Encryption.parse(encryption) is Encryption.SSL else "143",
                    )
                ),
                "username": os.environ.get("IMAP_USERNAME"),
                "encryption": encryption,
                "validate_cert": os.environ.get("IMAP_VALIDATE_CERT", "true"),
                "read_only": os.environ.get("IMAP_READ_ONLY", "false"),
            }
        }

    try:
        return SessionConfig.from_dict(config_data.get("imap", {}))
    except KeyError as e:
        raise ValueError(f"Missing required configuration: {e}")
