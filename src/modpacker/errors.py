"""
Exception hierarchy for modpacker.

All modpacker exceptions inherit from ModpackerError, allowing callers to catch
all modpacker-specific exceptions with a single except clause.

Exception Categories:
    - NetworkError: Registry transport failure or non-success response
    - NotFoundError: No manifest at the requested pack location
    - CorruptDataError: Manifest present but unparsable or ill-shaped
    - ConflictError: Pack creation over an existing non-empty location
    - InvalidInputError: Bad version string, pack name, or loader

"No compatible build" and "no usable file" are not errors. They travel as
data (a None resolution) because skipping an incompatible mod is routine.
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Network errors: 1xxx
ERROR_NETWORK = 1001
ERROR_NETWORK_TIMEOUT = 1002
ERROR_NETWORK_STATUS = 1003
ERROR_NETWORK_BAD_RESPONSE = 1004

# Pack storage errors: 2xxx
ERROR_PACK_NOT_FOUND = 2001
ERROR_PACK_CORRUPT = 2002
ERROR_PACK_CONFLICT = 2003
ERROR_PACK_WRITE = 2004

# Input errors: 3xxx
ERROR_INVALID_INPUT = 3001


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class ModpackerError(Exception):
    """
    Base exception for all modpacker errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Network Errors
# =============================================================================


@dataclass
class NetworkError(ModpackerError):
    """
    Raised when a registry request fails.

    Covers transport failures, timeouts, non-success HTTP statuses and
    responses that cannot be decoded. Callers may retry, or treat the
    affected mod as unresolved.

    Attributes:
        url: The URL that was requested
        status_code: HTTP status if a response was received
        underlying_error: Description of the transport failure
    """

    url: str = ""
    status_code: int | None = None
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            if self.status_code is not None:
                self.message = f"Request to {self.url} failed with HTTP {self.status_code}"
            else:
                self.message = f"Request to {self.url} failed: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_NETWORK_STATUS if self.status_code is not None else ERROR_NETWORK
        self.context.update({
            "url": self.url,
            "status_code": self.status_code,
            "underlying_error": self.underlying_error,
        })

    @property
    def retryable(self) -> bool:
        """Whether retrying the same request might succeed."""
        if self.status_code is None:
            return self.code != ERROR_NETWORK_BAD_RESPONSE
        return self.status_code == 429 or self.status_code >= 500


@dataclass
class NetworkTimeoutError(NetworkError):
    """Raised when a registry request exceeds its timeout."""

    timeout_seconds: float = 0

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Request to {self.url} timed out after {self.timeout_seconds}s"
        if self.code == 0:
            self.code = ERROR_NETWORK_TIMEOUT
        if not self.suggestion:
            self.suggestion = "Increase registry.timeout_seconds in the config file"
        super().__post_init__()
        self.context["timeout_seconds"] = self.timeout_seconds


# =============================================================================
# Pack Storage Errors
# =============================================================================


@dataclass
class PackError(ModpackerError):
    """
    Base class for pack storage errors.

    Attributes:
        location: Pack directory or manifest path involved
    """

    location: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context["location"] = self.location


@dataclass
class NotFoundError(PackError):
    """Raised when no manifest exists at a pack location."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"No pack manifest found at {self.location}"
        if self.code == 0:
            self.code = ERROR_PACK_NOT_FOUND
        if not self.suggestion:
            self.suggestion = "Use `modpacker list` to see known packs"
        super().__post_init__()


@dataclass
class CorruptDataError(PackError):
    """Raised when a manifest exists but cannot be parsed into a pack."""

    parse_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Pack manifest at {self.location} is corrupt: {self.parse_error}"
        if self.code == 0:
            self.code = ERROR_PACK_CORRUPT
        super().__post_init__()
        self.context["parse_error"] = self.parse_error


@dataclass
class ConflictError(PackError):
    """Raised when creating a pack where a non-empty directory already exists."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Pack location already exists: {self.location}"
        if self.code == 0:
            self.code = ERROR_PACK_CONFLICT
        if not self.suggestion:
            self.suggestion = "Choose another pack name, or add mods to the existing pack"
        super().__post_init__()


@dataclass
class PackWriteError(PackError):
    """Raised when writing a manifest fails."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Failed to write pack manifest at {self.location}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_PACK_WRITE
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


# =============================================================================
# Input Errors
# =============================================================================


@dataclass
class InvalidInputError(ModpackerError):
    """Raised when a caller-supplied value fails validation."""

    field_name: str = ""
    value: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid {self.field_name}: {self.value!r}"
        if self.code == 0:
            self.code = ERROR_INVALID_INPUT
        self.context.update({
            "field": self.field_name,
            "value": self.value,
        })
