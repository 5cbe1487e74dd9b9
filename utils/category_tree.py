"""
Category tree helpers.

One builder for the whole application: every caller that needs nested
categories (storefront navigation, admin tree, DTO nesting) goes through
build_category_tree().
"""

import logging
from typing import Callable, Iterable, Mapping

from models.category import CategoryDTO

logger = logging.getLogger(__name__)


def build_category_tree(categories: Iterable[CategoryDTO]) -> list[CategoryDTO]:
    """
    Convert a flat list of categories into a forest.

    First pass builds an id -> node map (copies with empty children), second
    pass attaches every node to its parent. A node whose parent is missing
    from the input becomes a root. Input order is preserved among siblings.

    Args:
        categories: Flat category DTOs, typically ordered by sort_order

    Returns:
        Root nodes with nested children
    """
    nodes: dict[int, CategoryDTO] = {}
    ordered: list[CategoryDTO] = []
    for category in categories:
        node = category.model_copy(update={'children': []})
        nodes[node.id] = node
        ordered.append(node)

    roots: list[CategoryDTO] = []
    for node in ordered:
        parent = nodes.get(node.parent_id) if node.parent_id is not None else None
        if parent is not None and parent.id != node.id:
            parent.children.append(node)
        else:
            roots.append(node)

    # Nodes locked in a parent cycle are never reachable from a root
    reachable = count_nodes(roots)
    if reachable != len(ordered):
        logger.warning(
            f"[Category] Tree built with {reachable} of {len(ordered)} categories reachable; "
            f"parent links contain a cycle"
        )
    return roots


def count_nodes(roots: Iterable[CategoryDTO]) -> int:
    total = 0
    stack = list(roots)
    seen: set[int] = set()
    while stack:
        node = stack.pop()
        if node.id in seen:
            continue
        seen.add(node.id)
        total += 1
        stack.extend(node.children)
    return total


def flatten_tree(roots: Iterable[CategoryDTO]) -> list[CategoryDTO]:
    """Depth-first, pre-order list of every node in the forest."""
    result: list[CategoryDTO] = []

    def _walk(nodes: Iterable[CategoryDTO]):
        for node in nodes:
            result.append(node)
            _walk(node.children)

    _walk(roots)
    return result


def limit_depth(roots: list[CategoryDTO], max_depth: int) -> list[CategoryDTO]:
    """
    Drop nesting below max_depth levels (roots are depth 1).

    Returns new nodes; the input forest is left untouched.
    """
    def _trim(nodes: list[CategoryDTO], depth: int) -> list[CategoryDTO]:
        trimmed = []
        for node in nodes:
            children = _trim(node.children, depth + 1) if depth < max_depth else []
            trimmed.append(node.model_copy(update={'children': children}))
        return trimmed

    if max_depth < 1:
        return []
    return _trim(roots, 1)


def find_category_by_slug(roots: Iterable[CategoryDTO], slug: str) -> CategoryDTO | None:
    for node in flatten_tree(roots):
        if node.slug == slug:
            return node
    return None


def would_create_cycle(category_id: int, new_parent_id: int | None,
                       parent_of: Mapping[int, int | None] | Callable[[int], int | None]) -> bool:
    """
    Check whether setting category_id's parent to new_parent_id forms a cycle.

    Walks up from the proposed parent; reaching category_id means the
    category would become its own ancestor.

    Args:
        category_id: Category being moved
        new_parent_id: Proposed parent (None moves it to the root level)
        parent_of: Current parent lookup, either a mapping or a callable

    Returns:
        True when the assignment must be rejected
    """
    if new_parent_id is None:
        return False
    lookup = parent_of.get if isinstance(parent_of, Mapping) else parent_of

    visited: set[int] = set()
    current = new_parent_id
    while current is not None:
        if current == category_id:
            return True
        if current in visited:
            # Existing cycle above the target; refuse to extend it
            return True
        visited.add(current)
        current = lookup(current)
    return False
