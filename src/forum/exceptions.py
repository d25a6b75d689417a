"""Forum domain errors.

Every failure raised by the forum layer is a ForumError carrying a stable
``code``; routers translate the code to an HTTP status.
"""


class ForumError(Exception):
    """Base forum error."""

    def __init__(self, message: str, code: str = "forum_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(ForumError):
    """Post, category or reply not found (or not visible)."""

    def __init__(self, message: str = "Not found"):
        super().__init__(message, "not_found")


class ForbiddenError(ForumError):
    """Operation not allowed for this post, category or caller."""

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message, "forbidden")


class ForumValidationError(ForumError):
    """Rejected input: content policy or reply depth."""

    def __init__(self, message: str = "Invalid request"):
        super().__init__(message, "validation_error")


class InternalError(ForumError):
    """Storage or lock failure."""

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message, "internal_error")
