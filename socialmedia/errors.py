"""
Error taxonomy shared by the stores, the services and the HTTP layer.

- ValidationFailure and its subclasses map to 400
- CredentialMismatchError maps to 401
- StorageError maps to 500
"""


class SocialMediaError(Exception):
    """Base class for predictable application errors."""


class ValidationFailure(SocialMediaError):
    """Raised when a business rule rejects the input."""


class InvalidUsernameError(ValidationFailure):
    """Username is empty or whitespace only."""


class InvalidPasswordError(ValidationFailure):
    """Password is shorter than the minimum length."""


class DuplicateUsernameError(ValidationFailure):
    """An account with this username already exists."""


class InvalidMessageTextError(ValidationFailure):
    """Message text is blank or too long."""


class UnknownAuthorError(ValidationFailure):
    """posted_by does not reference an existing account."""


class MessageNotFoundError(ValidationFailure):
    """The message to update does not exist."""


class CredentialMismatchError(SocialMediaError):
    """No account matches the given username and password."""


class StorageError(SocialMediaError):
    """The database could not complete the operation."""
