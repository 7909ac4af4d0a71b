"""Server configuration.

Resolved once at startup (from the command line or directly in tests) and
shared, read-only, with every component for the lifetime of the process.
"""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

DEFAULT_ADDR = "127.0.0.1:4000"
DEFAULT_WS_PORT = 8090
DEFAULT_TRIGGER_PORT = 8091
DEFAULT_RELOAD_PATH = "/__livereload"


class ConfigError(Exception):
    """Raised when the server configuration is invalid."""


def parse_addr(addr: str) -> tuple[str, int]:
    """Split a ``HOST:PORT`` string into its parts.

    IPv6 hosts must be bracketed, e.g. ``[::1]:4000``.
    """
    host, sep, port = addr.rpartition(":")
    if not sep or not host:
        raise ConfigError(f"Invalid address {addr!r}, expected HOST:PORT")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    try:
        return host, int(port)
    except ValueError as err:
        raise ConfigError(f"Invalid port in address {addr!r}") from err


class ServerConfig(BaseModel):
    """Immutable configuration for a hotserve instance."""

    model_config = ConfigDict(frozen=True, validate_default=True)

    host: str = "127.0.0.1"
    port: int = Field(default=4000, ge=1, le=65535)
    ws_port: int = Field(default=DEFAULT_WS_PORT, ge=1, le=65535)
    trigger_port: int = Field(default=DEFAULT_TRIGGER_PORT, ge=1, le=65535)
    root_dir: Path = Path(".")
    watch: bool = False
    poll_interval: float = Field(default=0.5, gt=0)
    debounce_seconds: float = Field(default=0.2, ge=0)
    reload_path: str = DEFAULT_RELOAD_PATH
    index_files: tuple[str, ...] = ("index.html", "index.htm")
    inject_client: bool = True

    @field_validator("root_dir")
    @classmethod
    def _root_must_be_directory(cls, value: Path) -> Path:
        if not value.is_dir():
            raise ValueError(f"root directory {value} does not exist or is not a directory")
        return value.resolve()

    @field_validator("reload_path")
    @classmethod
    def _reload_path_absolute(cls, value: str) -> str:
        if not value.startswith("/") or value == "/":
            raise ValueError("reload path must be an absolute path other than '/'")
        return value.rstrip("/")

    @model_validator(mode="after")
    def _ports_distinct(self) -> "ServerConfig":
        if self.trigger_port in (self.port, self.ws_port):
            raise ValueError("trigger port must differ from the HTTP and websocket ports")
        return self

    @property
    def serves_separate_ws_port(self) -> bool:
        """Whether the websocket port needs its own listener."""
        return self.ws_port != self.port

    @property
    def url(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"http://{host}:{self.port}"

    @classmethod
    def build(cls, addr: str = DEFAULT_ADDR, **kwargs) -> "ServerConfig":
        """Create a config from a ``HOST:PORT`` address and keyword options.

        Raises:
            ConfigError: If the address or any option is invalid.
        """
        host, port = parse_addr(addr)
        try:
            return cls(host=host, port=port, **kwargs)
        except ValidationError as err:
            messages = "; ".join(
                f"{'.'.join(str(p) for p in e['loc']) or 'config'}: {e['msg']}" for e in err.errors()
            )
            raise ConfigError(messages) from err
