"""Application configuration.

AppConfig is a frozen dataclass: immutable after creation, attribute
access instead of string-key dict lookups.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(base_path="/api", display_error_details=True)

    ``display_error_details`` is the server-wide half of the debug
    disclosure gate. Stack traces are only ever sent when it is on *and*
    the request carries the header configured with
    ``App.set_debug_header()``.
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False

    # Mount point when the app is not served at "/"
    base_path: str = ""

    # Error responses
    display_error_details: bool = False
    error_message: str = "An internal error happened. >.<"
    not_found_message: str = "Page not found."
    method_not_allowed_message: str = "Method not allowed"

    def __post_init__(self) -> None:
        if self.base_path:
            base = "/" + self.base_path.strip("/")
            object.__setattr__(self, "base_path", "" if base == "/" else base)
