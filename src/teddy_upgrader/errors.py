"""Exceptions raised by the upgrade pipeline."""


class UpgradeError(Exception):
    """Base exception for upgrade-related errors."""


class VersionFileError(UpgradeError):
    """Raised when the installed version file cannot be read or parsed."""


class ExtractionError(UpgradeError):
    """Raised when a release archive cannot be extracted safely."""
