"""
access/errors.py -- Rejections raised by the override write path.

Read paths never raise these: an unknown page simply resolves to "deny".
Both subclass ValueError so callers outside the API layer can treat them as
bad input without importing this module.
"""


class AccessError(ValueError):
    """Base class for override write rejections."""

    code = "access_error"

    def __init__(self, page_key: str, message: str) -> None:
        super().__init__(message)
        self.page_key = page_key


class PageNotFoundError(AccessError):
    code = "page_not_found"

    def __init__(self, page_key: str) -> None:
        super().__init__(page_key, f"No such page: {page_key!r}.")


class ImmutablePageError(AccessError):
    """The page's access is fixed by its always_allow / admin_only flag."""

    code = "immutable_page"

    def __init__(self, page_key: str) -> None:
        super().__init__(page_key, f"Access to page {page_key!r} cannot be overridden per user.")
