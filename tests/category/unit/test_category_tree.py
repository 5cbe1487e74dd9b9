"""
Unit tests for utils/category_tree.py: building, depth limiting and cycle checks.
"""

from models.category import CategoryDTO
from utils.category_tree import (
    build_category_tree,
    count_nodes,
    flatten_tree,
    limit_depth,
    find_category_by_slug,
    would_create_cycle,
)


def _category(category_id: int, parent_id: int | None = None, name: str | None = None) -> CategoryDTO:
    name = name or f"Category {category_id}"
    return CategoryDTO(id=category_id, name=name, slug=name.lower().replace(" ", "-"), parent_id=parent_id)


class TestBuildCategoryTree:

    def test_child_nested_under_parent(self):
        roots = build_category_tree([_category(1), _category(2, parent_id=1)])

        assert len(roots) == 1
        assert roots[0].id == 1
        assert [child.id for child in roots[0].children] == [2]
        assert count_nodes(roots) == 2

    def test_every_input_node_appears_once(self):
        categories = [
            _category(1),
            _category(2, parent_id=1),
            _category(3, parent_id=1),
            _category(4, parent_id=2),
            _category(5),
        ]

        roots = build_category_tree(categories)

        assert count_nodes(roots) == len(categories)
        assert sorted(node.id for node in flatten_tree(roots)) == [1, 2, 3, 4, 5]

    def test_sibling_order_follows_input(self):
        roots = build_category_tree([_category(1), _category(3, parent_id=1), _category(2, parent_id=1)])

        assert [child.id for child in roots[0].children] == [3, 2]

    def test_missing_parent_becomes_root(self):
        roots = build_category_tree([_category(7, parent_id=99)])

        assert [root.id for root in roots] == [7]

    def test_input_is_not_mutated(self):
        parent = _category(1)
        build_category_tree([parent, _category(2, parent_id=1)])

        assert parent.children == []

    def test_empty_input(self):
        assert build_category_tree([]) == []


class TestLimitDepth:

    def test_trims_below_max_depth(self):
        roots = build_category_tree([_category(1), _category(2, parent_id=1), _category(3, parent_id=2)])

        trimmed = limit_depth(roots, 2)

        assert trimmed[0].children[0].id == 2
        assert trimmed[0].children[0].children == []
        # Original forest untouched
        assert roots[0].children[0].children[0].id == 3

    def test_zero_depth_returns_nothing(self):
        roots = build_category_tree([_category(1)])

        assert limit_depth(roots, 0) == []


class TestFindBySlug:

    def test_finds_nested_node(self):
        roots = build_category_tree([_category(1, name="Home"), _category(2, parent_id=1, name="Garden Tools")])

        assert find_category_by_slug(roots, "garden-tools").id == 2
        assert find_category_by_slug(roots, "unknown") is None


class TestWouldCreateCycle:

    parents = {1: None, 2: 1, 3: 2}

    def test_moving_under_descendant_is_a_cycle(self):
        assert would_create_cycle(1, 3, self.parents) is True

    def test_self_parent_is_a_cycle(self):
        assert would_create_cycle(2, 2, self.parents) is True

    def test_moving_to_root_is_allowed(self):
        assert would_create_cycle(3, None, self.parents) is False

    def test_moving_under_unrelated_branch_is_allowed(self):
        assert would_create_cycle(3, 1, {1: None, 2: 1, 3: 2, 4: None}) is False

    def test_accepts_callable_lookup(self):
        assert would_create_cycle(1, 3, self.parents.get) is True
