"""Exceptions raised across the search pipeline."""


class HopSearchError(Exception):
    """Base exception for pipeline errors."""

    pass


class PlanningError(HopSearchError):
    """Raised when a query cannot be turned into a task plan."""

    pass


class SearchProviderError(HopSearchError):
    """Raised when no search provider could answer a query."""

    pass


class GenerationError(HopSearchError):
    """Raised when the language-generation service fails."""

    pass


class ConfigurationError(HopSearchError):
    """Raised when a configuration file is missing or malformed."""

    pass
