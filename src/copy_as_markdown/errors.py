from __future__ import annotations

ERROR_CODES = (
    "CONVERSION_FAILED",
    "RESTRICTED_PAGE",
    "PROFILE_NOT_FOUND",
    "SIZE_LIMIT",
    "EXTRACTION_FAILED",
    "NO_ITEMS",
    "PACKAGING_FAILED",
    "INVALID_PROFILES",
)


class ConversionError(RuntimeError):
    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code


class PackagingError(ConversionError):
    """Raised when the batch archive cannot be assembled."""

    def __init__(self, message: str) -> None:
        super().__init__("PACKAGING_FAILED", message)


class ProfileError(ConversionError):
    """Raised when a profile collection breaks its invariants."""

    def __init__(self, message: str) -> None:
        super().__init__("INVALID_PROFILES", message)


__all__ = ["ERROR_CODES", "ConversionError", "PackagingError", "ProfileError"]
