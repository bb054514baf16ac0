import configparser
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from urllib.parse import urlsplit


class PermissionPolicy(str, Enum):
    """How to read an entry whose owner permission bits are all zero."""

    PERMISSIVE = "permissive"  # treat as readable and writable
    STRICT = "strict"  # treat as neither


@dataclass(frozen=True)
class FTPConfig:
    host: str
    port: int = 21
    username: str | None = None
    password: str | None = None
    passive_mode: bool = True
    encoding: str = "utf-8"


@dataclass(frozen=True)
class ConnectionConfig:
    timeout_seconds: float = 30
    retry_attempts: int = 3
    retry_delay_seconds: float = 1


@dataclass(frozen=True)
class PermissionConfig:
    policy: PermissionPolicy = PermissionPolicy.PERMISSIVE


@dataclass
class LogConfig:
    level: str = "INFO"
    file: str | None = None
    console: bool = True


@dataclass
class AppConfig:
    ftp: FTPConfig
    connection: ConnectionConfig
    permissions: PermissionConfig
    logging: LogConfig


def parse_address(address: str) -> tuple[str, int]:
    """
    Split an FTP address into host and port.

    Accepts ``host``, ``host:port`` and ``ftp://host[:port]``. Backslashes are
    treated as forward slashes. The address must point at the server root.

    Raises:
        ValueError: If the address is empty, has an unsupported scheme, or
            names a directory other than ``/``.
    """
    if not address or not address.strip():
        raise ValueError("FTP address must not be empty")

    address = address.strip().replace("\\", "/")
    if "://" not in address:
        address = "ftp://" + address

    url = urlsplit(address)
    if url.scheme.lower() != "ftp":
        raise ValueError(f"Unsupported scheme in address: {url.scheme}")
    if not url.hostname:
        raise ValueError(f"No host in address: {address}")
    if url.path not in ("", "/"):
        raise ValueError(f"Address must not contain a directory: {url.path}")

    try:
        port = url.port or 21
    except ValueError:
        raise ValueError(f"Invalid port in address: {address}")

    return url.hostname, port


def _parse_bool(value: str) -> bool:
    return value.lower() in ("true", "1", "yes")


def _parse_number(section: str, key: str, value: str, kind=int):
    try:
        return kind(value)
    except ValueError:
        raise ValueError(
            f"Invalid {key} value in [{section}] config: '{value}' - must be a number"
        )


def load_config(config_path: str | None = None, **cli_args) -> AppConfig:
    """
    Load configuration from an INI file and/or CLI arguments.
    CLI arguments take precedence over config file.

    Args:
        config_path: Path to the INI configuration file.
        **cli_args: Key-value pairs from command line arguments.

    Returns:
        AppConfig: The populated configuration object.

    Raises:
        FileNotFoundError: If config_path is provided but does not exist.
        ValueError: If the host is missing or a value is malformed.
    """
    # Initialize with defaults
    ftp_config = {
        "host": None,
        "port": 21,
        "username": None,
        "password": None,
        "passive_mode": True,
        "encoding": "utf-8",
    }
    connection_config = {
        "timeout_seconds": 30,
        "retry_attempts": 3,
        "retry_delay_seconds": 1,
    }
    permission_policy = PermissionPolicy.PERMISSIVE
    log_config = {
        "level": "INFO",
        "file": None,
        "console": True,
    }

    # Parse INI file if provided
    if config_path is not None:
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        parser = configparser.ConfigParser()
        parser.read(config_file, encoding="utf-8")

        # Load [ftp] section
        if parser.has_section("ftp"):
            ftp_section = parser["ftp"]
            if ftp_section.get("address"):
                host, port = parse_address(ftp_section.get("address"))
                ftp_config["host"] = host
                ftp_config["port"] = port
            if ftp_section.get("host"):
                ftp_config["host"] = ftp_section.get("host")
            if ftp_section.get("port"):
                ftp_config["port"] = _parse_number("ftp", "port", ftp_section.get("port"))
            if ftp_section.get("username"):
                ftp_config["username"] = ftp_section.get("username") or None
            if ftp_section.get("password"):
                ftp_config["password"] = ftp_section.get("password") or None
            if ftp_section.get("passive_mode"):
                ftp_config["passive_mode"] = _parse_bool(ftp_section.get("passive_mode"))
            if ftp_section.get("encoding"):
                ftp_config["encoding"] = ftp_section.get("encoding")

        # Load [connection] section
        if parser.has_section("connection"):
            conn_section = parser["connection"]
            for key, kind in (
                ("timeout_seconds", float),
                ("retry_attempts", int),
                ("retry_delay_seconds", float),
            ):
                if conn_section.get(key):
                    connection_config[key] = _parse_number(
                        "connection", key, conn_section.get(key), kind
                    )

        # Load [permissions] section
        if parser.has_section("permissions"):
            policy = parser["permissions"].get("default_policy")
            if policy:
                try:
                    permission_policy = PermissionPolicy(policy.lower())
                except ValueError:
                    raise ValueError(
                        f"Invalid default_policy in config: '{policy}' - "
                        "must be 'permissive' or 'strict'"
                    )

        # Load [logging] section
        if parser.has_section("logging"):
            log_section = parser["logging"]
            if log_section.get("level"):
                log_config["level"] = log_section.get("level")
            if log_section.get("file"):
                log_config["file"] = log_section.get("file")
            if log_section.get("console"):
                log_config["console"] = _parse_bool(log_section.get("console"))

    # Override with CLI arguments (cli_args take precedence)
    if cli_args.get("address") is not None:
        ftp_config["host"], ftp_config["port"] = parse_address(cli_args["address"])
    if cli_args.get("host") is not None:
        ftp_config["host"] = cli_args["host"]
    if cli_args.get("port") is not None:
        ftp_config["port"] = int(cli_args["port"])
    if cli_args.get("username") is not None:
        ftp_config["username"] = cli_args["username"] or None
    if cli_args.get("password") is not None:
        ftp_config["password"] = cli_args["password"] or None
    if cli_args.get("active_mode"):
        ftp_config["passive_mode"] = False
    if cli_args.get("debug"):
        log_config["level"] = "DEBUG"
        log_config["console"] = True

    # Validate required fields
    if not ftp_config["host"]:
        raise ValueError("Missing required configuration fields: host")
    if connection_config["retry_attempts"] < 1:
        raise ValueError("retry_attempts must be at least 1")

    return AppConfig(
        ftp=FTPConfig(
            host=ftp_config["host"],
            port=ftp_config["port"],
            username=ftp_config["username"],
            password=ftp_config["password"],
            passive_mode=ftp_config["passive_mode"],
            encoding=ftp_config["encoding"],
        ),
        connection=ConnectionConfig(
            timeout_seconds=connection_config["timeout_seconds"],
            retry_attempts=connection_config["retry_attempts"],
            retry_delay_seconds=connection_config["retry_delay_seconds"],
        ),
        permissions=PermissionConfig(policy=permission_policy),
        logging=LogConfig(
            level=log_config["level"],
            file=log_config["file"],
            console=log_config["console"],
        ),
    )
