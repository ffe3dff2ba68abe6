"""Custom exceptions for docfilter.

Filter translation itself never raises for malformed conditions (those are
logged and dropped); these exceptions cover invalid pagination input,
missing configuration and unbound repository collections.
"""

from typing import Any, Dict


class DocFilterError(Exception):
    """Base exception for all docfilter errors.

    Attributes:
        message: Error message
        details: Additional error context as key-value pairs
    """

    def __init__(self, message: str = "", **kwargs: Any) -> None:
        """Initialize exception with message and additional details.

        Args:
            message: Human-readable error message
            **kwargs: Additional context (e.g., field, collection_name, value)
        """
        self.message = message
        self.details: Dict[str, Any] = kwargs
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the complete error message with details."""
        if not self.details:
            return self.message

        details_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
        if self.message:
            return f"{self.message} ({details_str})"
        return details_str

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# Validation exceptions
class ValidationError(DocFilterError):
    """Raised when caller-supplied query input fails validation.

    Example:
        >>> raise ValidationError("Invalid pagination", field="limit", value=-1)
    """


class InvalidFieldError(ValidationError):
    """Raised when a field has an invalid value or type.

    Example:
        >>> raise InvalidFieldError("Must be a non-negative integer", field="offset", value=-5)
    """


# Configuration exceptions
class ConfigurationError(DocFilterError):
    """Raised when configuration is invalid or missing."""


class MissingConfigError(ConfigurationError):
    """Raised when required configuration values are not set.

    Example:
        >>> raise MissingConfigError("Configuration not set", config_key="MONGO_URI")
    """


# Collection exceptions
class CollectionNotInitializedError(DocFilterError):
    """Raised when a repository has neither an injected collection nor a collection name.

    Example:
        >>> raise CollectionNotInitializedError("Collection not initialized", repository="TenantRepository")
    """
