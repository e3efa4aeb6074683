"""
Domain exceptions for the content core.

Every error the content service can raise derives from FeedboardError. The
HTTP layer (feedboard.main) maps each class to a response:

- ContentTypeConfigurationError → 500, logged as critical (operator alarm)
- UnrecognizedContentTypeError  → 400 "Unrecognized content type."
- AuthorizationError            → 403
- ContentNotFoundError          → redirect to the browse page with a notice
- ContentValidationError        → 422 with field errors
- ActionDispatchError           → 400 "Unable to perform action."
- RenderingError                → 500, never an empty body
"""

from typing import Any, Optional


class FeedboardError(Exception):
    """Base exception for content service errors."""
    pass


# ========================================
# Content Type Resolution
# ========================================


class ContentTypeConfigurationError(FeedboardError):
    """Raised when no default upload type is configured to fall back on."""
    pass


class ContentTypeConformanceError(FeedboardError):
    """Raised when a registered content type is not a Content subclass."""
    pass


class UnrecognizedContentTypeError(FeedboardError):
    """Raised when a type name resolves to no registered content type."""

    def __init__(self, type_name: Optional[str]):
        self.type_name = type_name
        super().__init__(f"Unrecognized content type: {type_name!r}")


# ========================================
# Request Handling
# ========================================


class AuthorizationError(FeedboardError):
    """Raised when the capability gate denies an operation."""

    def __init__(self, operation: str, resource: Any):
        self.operation = operation
        self.resource = resource
        super().__init__(f"Not allowed to {operation} {type(resource).__name__}")


class ContentNotFoundError(FeedboardError):
    """Raised when a content id does not exist (anymore)."""

    def __init__(self, content_id: int):
        self.content_id = content_id
        super().__init__(f"Content {content_id} not found")


class ContentValidationError(FeedboardError):
    """
    Raised when field binding or model invariants fail.

    Carries the field errors and the attempted content so the form can be
    re-rendered with what the user typed.
    """

    def __init__(
        self,
        errors: dict[str, list[str]],
        content: Any = None,
        feeds: Optional[list[Any]] = None,
    ):
        self.errors = errors
        self.content = content
        self.feeds = feeds or []
        super().__init__(f"Content is invalid: {', '.join(sorted(errors))}")


class ActionDispatchError(FeedboardError):
    """Raised when a custom action is unknown or its handler declines."""

    def __init__(self, action_name: str, type_name: str):
        self.action_name = action_name
        self.type_name = type_name
        super().__init__(f"Unable to perform {action_name!r} on {type_name}")


class RenderingError(FeedboardError):
    """Raised when a content renderer fails."""

    def __init__(self, content_id: Optional[int], type_name: str, reason: str):
        self.content_id = content_id
        self.type_name = type_name
        self.reason = reason
        super().__init__(f"Rendering {type_name} {content_id} failed: {reason}")
