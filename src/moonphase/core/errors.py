class MoonPhaseError(Exception):
    """Base error."""

class ReferenceDataError(MoonPhaseError):
    """Raised when a reference event file cannot be read or is not a JSON array."""

class ReferenceFetchError(ReferenceDataError):
    """Raised when a year cannot be retrieved from the static API."""

class NoComparableYearsError(MoonPhaseError):
    """Raised when calibration found no candidate with a comparable year."""
