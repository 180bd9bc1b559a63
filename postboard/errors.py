"""
Error taxonomy for post operations.

Every failure a caller can observe is a ``PostError``.  Each class carries a
short ``code`` (the key of the structured error body), a human readable
``message`` and the ``status_code`` the HTTP adapter answers with.  The
service layer raises these; ``postboard.main`` renders them through a single
exception handler.
"""


class PostError(Exception):
    code = "error"
    message = "Post operation failed"
    status_code = 500

    def __init__(self, message: str | None = None, code: str | None = None) -> None:
        if message is not None:
            self.message = message
        if code is not None:
            self.code = code
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {self.code: self.message}


class PostNotFound(PostError):
    code = "postnotfound"
    message = "No post found"
    status_code = 404


class ValidationFailed(PostError):
    """Malformed create or comment input; carries field-level messages."""

    code = "validation"
    message = "Invalid input"
    status_code = 400

    def __init__(self, errors: dict[str, str]) -> None:
        self.errors = dict(errors)
        super().__init__("; ".join(f"{k}: {v}" for k, v in self.errors.items()) or None)

    def to_dict(self) -> dict:
        return dict(self.errors)


class InvalidComment(ValidationFailed):
    def __init__(self, message: str = "Text field is required") -> None:
        super().__init__({"text": message})


class NotAuthorized(PostError):
    code = "notauthorized"
    message = "User not authorized"
    status_code = 401


class AlreadyLiked(PostError):
    code = "msg"
    message = "Post already liked"
    status_code = 400


class NotLiked(PostError):
    code = "msg"
    message = "Post has not yet been liked"
    status_code = 400


class CommentNotFound(PostError):
    code = "commentdoesnotexist"
    message = "Comment does not exist"
    status_code = 404


class ConcurrentModification(PostError):
    code = "conflict"
    message = "Post was modified concurrently, please retry"
    status_code = 409


class StoreError(PostError):
    """Opaque failure of the persistence layer.  Never retried."""

    code = "storeerror"
    message = "Server Error"
    status_code = 500
