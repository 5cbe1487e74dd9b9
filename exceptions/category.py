"""
Category-related exceptions.
"""

from .base import StorefrontException


class CategoryException(StorefrontException):
    """Base exception for category-related errors."""
    pass


class CategoryNotFoundException(CategoryException):
    """Raised when a category cannot be found by id or slug."""

    def __init__(self, category_id: int | None = None, slug: str | None = None):
        key = f"slug '{slug}'" if slug is not None else category_id
        super().__init__(
            f"Category {key} not found",
            details={'category_id': category_id, 'slug': slug}
        )
        self.category_id = category_id
        self.slug = slug


class CategoryFetchException(CategoryException):
    """Raised when reading categories from the database fails."""

    def __init__(self, reason: str):
        super().__init__(
            f"Failed to fetch categories: {reason}",
            details={'reason': reason}
        )
        self.reason = reason


class CategoryWriteException(CategoryException):
    """Raised when a category create/update/delete fails in the database."""

    def __init__(self, operation: str, reason: str):
        super().__init__(
            f"Failed to {operation} category: {reason}",
            details={'operation': operation, 'reason': reason}
        )
        self.operation = operation
        self.reason = reason


class CategoryCycleException(CategoryException):
    """Raised when a parent assignment would make a category its own ancestor."""

    def __init__(self, category_id: int, parent_id: int):
        super().__init__(
            f"Category {category_id} cannot be moved under {parent_id}: this would create a cycle",
            details={'category_id': category_id, 'parent_id': parent_id}
        )
        self.category_id = category_id
        self.parent_id = parent_id


class InvalidHighlightPriorityException(CategoryException):
    """Raised when a highlight priority is negative."""

    def __init__(self, priority: int):
        super().__init__(
            "Priority must be non-negative",
            details={'priority': priority}
        )
        self.priority = priority
