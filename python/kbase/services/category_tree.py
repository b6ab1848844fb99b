"""Category tree helpers.

Pure functions over category rows: build the nested tree the UI renders,
flatten it back into the id order that reorder_categories() expects, and move
a node among its siblings.
"""

from collections.abc import Sequence

from kbase.errors import ApiErrorCode, CategoryTreeError, NotFoundError
from kbase.schemas.category import CategoryNode, CategoryOut


def build_tree(categories: Sequence[CategoryOut]) -> list[CategoryNode]:
    """Nest categories under their parents.

    A category is a root when its parent_id is None or refers to a category
    not present in the input. Siblings keep their input order, so pass rows
    already sorted by (display_order, name).

    Raises:
        CategoryTreeError: If some categories are only reachable through a
            parent chain that loops back on itself.
    """
    nodes: dict[int, CategoryNode] = {}
    for category in categories:
        nodes.setdefault(category.id, CategoryNode(**category.model_dump()))

    root_ids: list[int] = []
    child_ids: dict[int, list[int]] = {}
    for node_id, node in nodes.items():
        if node.parent_id is None or node.parent_id not in nodes:
            root_ids.append(node_id)
        else:
            child_ids.setdefault(node.parent_id, []).append(node_id)

    visited: set[int] = set()

    def attach(node_id: int) -> CategoryNode:
        if node_id in visited:
            raise CategoryTreeError(message=f"Category {node_id} appears twice in the tree")
        visited.add(node_id)
        node = nodes[node_id]
        node.children = [attach(child_id) for child_id in child_ids.get(node_id, [])]
        return node

    tree = [attach(root_id) for root_id in root_ids]

    unreachable = sorted(set(nodes) - visited)
    if unreachable:
        raise CategoryTreeError(
            message=f"Category hierarchy contains a cycle involving ids {unreachable}"
        )

    return tree


def flatten_order(tree: Sequence[CategoryNode]) -> list[int]:
    """Depth-first pre-order ids (parent before its children)."""
    order: list[int] = []
    for node in tree:
        order.append(node.id)
        order.extend(flatten_order(node.children))
    return order


def move_category(tree: Sequence[CategoryNode], category_id: int, offset: int) -> list[int]:
    """Move a category up (negative offset) or down among its siblings.

    The move is clamped at either end of the sibling list. The input tree is
    left untouched.

    Returns:
        The flattened id order after the move.

    Raises:
        NotFoundError: If category_id is not in the tree.
    """
    moved = [node.model_copy(deep=True) for node in tree]

    siblings = _find_siblings(moved, category_id)
    if siblings is None:
        raise NotFoundError(ApiErrorCode.E_CATEGORY_NOT_FOUND, "Category not found")

    index = next(i for i, node in enumerate(siblings) if node.id == category_id)
    target = max(0, min(len(siblings) - 1, index + offset))
    siblings.insert(target, siblings.pop(index))

    return flatten_order(moved)


def _find_siblings(nodes: list[CategoryNode], category_id: int) -> list[CategoryNode] | None:
    for node in nodes:
        if node.id == category_id:
            return nodes
    for node in nodes:
        found = _find_siblings(node.children, category_id)
        if found is not None:
            return found
    return None
