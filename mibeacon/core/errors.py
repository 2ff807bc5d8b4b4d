"""Domain-specific errors for mibeacon."""

from __future__ import annotations


class MiBeaconError(Exception):
    """Base error for mibeacon."""


class ParseError(MiBeaconError):
    """Raised when advertisement bytes are structurally malformed."""


class TruncatedError(ParseError):
    """Raised when fewer bytes remain than the next field requires."""

    def __init__(self, what: str, *, needed: int, available: int) -> None:
        super().__init__(f"Truncated {what}: need {needed} bytes, {available} available")
        self.what = what
        self.needed = needed
        self.available = available


class InvalidFlagsError(ParseError):
    """Raised when the frame control field holds a rejected flag combination."""


class BadEventLengthError(ParseError):
    """Raised when an event block length does not fit its type or the input."""

    def __init__(self, event_type: int, *, expected: int, actual: int) -> None:
        super().__init__(
            f"Bad length for event 0x{event_type:04x}: expected {expected} bytes, got {actual}"
        )
        self.event_type = event_type
        self.expected = expected
        self.actual = actual


class AddressMismatchError(ParseError):
    """Raised when the MAC carried in a frame differs from the advertiser address."""


class DecryptError(MiBeaconError):
    """Base error for encrypted payload handling."""


class InsufficientLengthError(DecryptError):
    """Raised when the encrypted region cannot hold the counter extension and tag."""


class AuthenticationFailedError(DecryptError):
    """Raised when the authentication tag does not verify."""


class BindKeyError(DecryptError):
    """Raised when a bind key is missing or malformed."""


class NonceMaterialError(DecryptError):
    """Raised when the MAC needed for the nonce is unavailable."""


class RegistryError(MiBeaconError):
    """Base error for product registry loading."""


class ProductLoadError(RegistryError):
    """Raised when reading product sources fails."""


class ProductValidationError(RegistryError):
    """Raised when a product file does not conform to schema or semantics."""


class UnhandledServiceError(MiBeaconError):
    """Raised when service data arrives under a UUID this package does not decode."""
