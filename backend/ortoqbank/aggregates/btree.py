"""Order-statistics B-tree persisted in ``aggregate_nodes``.

Each (aggregate, namespace) pair owns one tree. Entries are ``(sort_key,
row_id)`` keys kept in sorted order; every non-root node stores the number
of entries in its subtree, so a range count touches O(max_node_size * log n)
nodes instead of the source table. A lazy root leaves its own count unset,
keeping the hottest row out of every write.
"""

from __future__ import annotations

import uuid
from bisect import bisect_left
from dataclasses import dataclass
from typing import Any, Iterator

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from ortoqbank.core.exceptions import AggregateError
from ortoqbank.models.aggregate import AggregateConfig, AggregateNode, AggregateTree

DEFAULT_MAX_NODE_SIZE = 16
DEFAULT_ROOT_LAZY = True

Key = tuple[Any, Any]


@dataclass(frozen=True)
class Bounds:
    """Sort-key range. ``None`` on either side means unbounded.

    Lower is inclusive and upper exclusive unless stated otherwise.
    """

    lower: Any = None
    upper: Any = None
    lower_inclusive: bool = True
    upper_inclusive: bool = False

    @classmethod
    def eq(cls, key: Any) -> Bounds:
        return cls(lower=key, upper=key, lower_inclusive=True, upper_inclusive=True)

    @property
    def unbounded(self) -> bool:
        return self.lower is None and self.upper is None

    def below(self, sort_key: Any) -> bool:
        """True when ``sort_key`` lies under the lower bound."""
        if self.lower is None:
            return False
        return sort_key < self.lower or (sort_key == self.lower and not self.lower_inclusive)

    def above(self, sort_key: Any) -> bool:
        """True when ``sort_key`` lies over the upper bound."""
        if self.upper is None:
            return False
        return sort_key > self.upper or (sort_key == self.upper and not self.upper_inclusive)

    def contains(self, sort_key: Any) -> bool:
        return not self.below(sort_key) and not self.above(sort_key)


ALL = Bounds()


def _keys(node: AggregateNode) -> list[Key]:
    return [(item[0], item[1]) for item in node.items]


def _store_keys(node: AggregateNode, keys: list[Key]) -> None:
    node.items = [[sort_key, row_id] for sort_key, row_id in keys]


def _is_leaf(node: AggregateNode) -> bool:
    return not node.subtrees


class AggregateBTree:
    """All trees of one named aggregate, bound to a session."""

    def __init__(self, session: Session, aggregate_name: str):
        self.session = session
        self.aggregate_name = aggregate_name

    # ------------------------------------------------------------------
    # Tree lookup / configuration
    # ------------------------------------------------------------------

    def _config(self) -> tuple[int, bool]:
        config = self.session.get(AggregateConfig, self.aggregate_name)
        if config is None:
            return DEFAULT_MAX_NODE_SIZE, DEFAULT_ROOT_LAZY
        return config.max_node_size, config.root_lazy

    def _tree(self, namespace: str, create: bool = False) -> AggregateTree | None:
        tree = self.session.scalar(
            select(AggregateTree).where(
                AggregateTree.aggregate_name == self.aggregate_name,
                AggregateTree.namespace == namespace,
            )
        )
        if tree is not None or not create:
            return tree

        max_node_size, root_lazy = self._config()
        root = self._new_node(tree_id=None, items=[], subtrees=[], count=None if root_lazy else 0)
        tree = AggregateTree(
            aggregate_name=self.aggregate_name,
            namespace=namespace,
            root_id=root.id,
            max_node_size=max_node_size,
            root_lazy=root_lazy,
        )
        self.session.add(tree)
        self.session.flush()
        root.tree_id = tree.id
        self.session.add(root)
        self.session.flush()
        return tree

    def _new_node(
        self, tree_id: int | None, items: list, subtrees: list[str], count: int | None
    ) -> AggregateNode:
        node = AggregateNode(
            id=str(uuid.uuid4()), tree_id=tree_id, items=items, subtrees=subtrees, count=count
        )
        if tree_id is not None:
            # Later lookups go through session.get, which does not see pending rows
            self.session.add(node)
            self.session.flush()
        return node

    def _node(self, node_id: str) -> AggregateNode:
        node = self.session.get(AggregateNode, node_id)
        if node is None:
            raise AggregateError(
                f"Aggregate {self.aggregate_name!r} references missing node {node_id}"
            )
        return node

    def _subtree_count(self, node: AggregateNode) -> int:
        if node.count is not None:
            return node.count
        return len(node.items) + sum(self._subtree_count(self._node(c)) for c in node.subtrees)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def count(self, namespace: str, bounds: Bounds = ALL) -> int:
        """Number of entries in ``namespace`` whose sort key lies in ``bounds``."""
        tree = self._tree(namespace)
        if tree is None:
            return 0
        root = self._node(tree.root_id)
        if bounds.unbounded:
            return self._subtree_count(root)
        return self._count_in(root, bounds, None, None)

    def _count_in(self, node: AggregateNode, bounds: Bounds, lo: Any, hi: Any) -> int:
        # Every key in this subtree has a sort key within [lo, hi]; None is open.
        covered = (bounds.lower is None if lo is None else not bounds.below(lo)) and (
            bounds.upper is None if hi is None else not bounds.above(hi)
        )
        if covered:
            return self._subtree_count(node)
        if (hi is not None and bounds.below(hi)) or (lo is not None and bounds.above(lo)):
            return 0

        keys = _keys(node)
        total = sum(1 for sort_key, _ in keys if bounds.contains(sort_key))
        for i, child_id in enumerate(node.subtrees):
            child_lo = keys[i - 1][0] if i > 0 else lo
            child_hi = keys[i][0] if i < len(keys) else hi
            total += self._count_in(self._node(child_id), bounds, child_lo, child_hi)
        return total

    def entries(self, namespace: str) -> Iterator[Key]:
        """All keys of ``namespace`` in order."""
        tree = self._tree(namespace)
        if tree is None:
            return iter(())
        return self._walk(self._node(tree.root_id))

    def _walk(self, node: AggregateNode) -> Iterator[Key]:
        keys = _keys(node)
        if _is_leaf(node):
            yield from keys
            return
        for i, child_id in enumerate(node.subtrees):
            yield from self._walk(self._node(child_id))
            if i < len(keys):
                yield keys[i]

    def namespaces(self) -> list[str]:
        return list(
            self.session.scalars(
                select(AggregateTree.namespace)
                .where(AggregateTree.aggregate_name == self.aggregate_name)
                .order_by(AggregateTree.namespace)
            )
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, namespace: str, key: Key) -> None:
        tree = self._tree(namespace, create=True)
        node = self._node(tree.root_id)
        path: list[tuple[AggregateNode, int]] = []

        while True:
            keys = _keys(node)
            i = bisect_left(keys, key)
            if i < len(keys) and keys[i] == key:
                raise AggregateError(
                    f"Duplicate entry {key!r} in aggregate {self.aggregate_name!r}",
                    details={"namespace": namespace},
                )
            if _is_leaf(node):
                keys.insert(i, key)
                _store_keys(node, keys)
                break
            path.append((node, i))
            node = self._node(node.subtrees[i])

        for ancestor, _ in path:
            if ancestor.count is not None:
                ancestor.count += 1
        if node.count is not None:
            node.count += 1

        while len(node.items) > tree.max_node_size:
            if path:
                parent, index = path.pop()
                self._split_child(tree, parent, index, node)
                node = parent
            else:
                self._split_root(tree, node)
                break

        self.session.flush()

    def _split(self, tree: AggregateTree, node: AggregateNode) -> tuple[Key, AggregateNode]:
        keys = _keys(node)
        mid = len(keys) // 2
        median = keys[mid]
        right = self._new_node(tree.id, items=[], subtrees=node.subtrees[mid + 1 :], count=None)
        _store_keys(right, keys[mid + 1 :])
        right.count = len(right.items) + sum(
            self._subtree_count(self._node(c)) for c in right.subtrees
        )
        _store_keys(node, keys[:mid])
        node.subtrees = node.subtrees[: mid + 1]
        node.count = len(node.items) + sum(
            self._subtree_count(self._node(c)) for c in node.subtrees
        )
        return median, right

    def _split_child(
        self, tree: AggregateTree, parent: AggregateNode, index: int, child: AggregateNode
    ) -> None:
        median, right = self._split(tree, child)
        keys = _keys(parent)
        keys.insert(index, median)
        _store_keys(parent, keys)
        subtrees = list(parent.subtrees)
        subtrees.insert(index + 1, right.id)
        parent.subtrees = subtrees

    def _split_root(self, tree: AggregateTree, root: AggregateNode) -> None:
        median, right = self._split(tree, root)
        new_root = self._new_node(
            tree.id,
            items=[],
            subtrees=[root.id, right.id],
            count=None if tree.root_lazy else root.count + right.count + 1,
        )
        _store_keys(new_root, [median])
        tree.root_id = new_root.id

    def delete(self, namespace: str, key: Key) -> None:
        tree = self._tree(namespace)
        if tree is None:
            raise AggregateError(
                f"Entry {key!r} not found in aggregate {self.aggregate_name!r}",
                details={"namespace": namespace},
            )
        min_items = tree.max_node_size // 2
        node = self._node(tree.root_id)
        path: list[tuple[AggregateNode, int]] = []

        while True:
            keys = _keys(node)
            i = bisect_left(keys, key)
            if i < len(keys) and keys[i] == key:
                break
            if _is_leaf(node):
                raise AggregateError(
                    f"Entry {key!r} not found in aggregate {self.aggregate_name!r}",
                    details={"namespace": namespace},
                )
            path.append((node, i))
            node = self._node(node.subtrees[i])

        if _is_leaf(node):
            keys.pop(i)
            _store_keys(node, keys)
        else:
            # Replace with the in-order predecessor, then remove it from its leaf.
            holder, holder_index = node, i
            path.append((node, i))
            node = self._node(node.subtrees[i])
            while not _is_leaf(node):
                path.append((node, len(node.subtrees) - 1))
                node = self._node(node.subtrees[-1])
            leaf_keys = _keys(node)
            predecessor = leaf_keys.pop()
            _store_keys(node, leaf_keys)
            holder_keys = _keys(holder)
            holder_keys[holder_index] = predecessor
            _store_keys(holder, holder_keys)

        for ancestor, _ in path:
            if ancestor.count is not None:
                ancestor.count -= 1
        if node.count is not None:
            node.count -= 1

        while path and len(node.items) < min_items:
            parent, index = path.pop()
            self._rebalance(parent, index, node, min_items)
            node = parent

        root = self._node(tree.root_id)
        if not root.items and root.subtrees:
            child = self._node(root.subtrees[0])
            tree.root_id = child.id
            if tree.root_lazy:
                child.count = None
            self.session.delete(root)

        self.session.flush()

    def _rebalance(
        self, parent: AggregateNode, index: int, node: AggregateNode, min_items: int
    ) -> None:
        parent_keys = _keys(parent)
        left = self._node(parent.subtrees[index - 1]) if index > 0 else None
        right = self._node(parent.subtrees[index + 1]) if index + 1 < len(parent.subtrees) else None

        if left is not None and len(left.items) > min_items:
            left_keys = _keys(left)
            node_keys = _keys(node)
            node_keys.insert(0, parent_keys[index - 1])
            parent_keys[index - 1] = left_keys.pop()
            moved = 1
            if not _is_leaf(left):
                child_id = left.subtrees[-1]
                moved += self._subtree_count(self._node(child_id))
                left.subtrees = left.subtrees[:-1]
                node.subtrees = [child_id] + list(node.subtrees)
            _store_keys(left, left_keys)
            _store_keys(node, node_keys)
            _store_keys(parent, parent_keys)
            left.count -= moved
            node.count += moved
            return

        if right is not None and len(right.items) > min_items:
            right_keys = _keys(right)
            node_keys = _keys(node)
            node_keys.append(parent_keys[index])
            parent_keys[index] = right_keys.pop(0)
            moved = 1
            if not _is_leaf(right):
                child_id = right.subtrees[0]
                moved += self._subtree_count(self._node(child_id))
                right.subtrees = right.subtrees[1:]
                node.subtrees = list(node.subtrees) + [child_id]
            _store_keys(right, right_keys)
            _store_keys(node, node_keys)
            _store_keys(parent, parent_keys)
            right.count -= moved
            node.count += moved
            return

        # Merge with a sibling, pulling the separator down from the parent.
        if left is not None:
            target, source, sep_index = left, node, index - 1
        else:
            target, source, sep_index = node, right, index
        merged = _keys(target) + [parent_keys[sep_index]] + _keys(source)
        _store_keys(target, merged)
        target.subtrees = list(target.subtrees) + list(source.subtrees)
        target.count = target.count + source.count + 1

        parent_keys.pop(sep_index)
        _store_keys(parent, parent_keys)
        subtrees = list(parent.subtrees)
        subtrees.pop(sep_index + 1)
        parent.subtrees = subtrees
        self.session.delete(source)

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def clear(self, namespace: str) -> None:
        """Drop the tree of one namespace."""
        tree = self._tree(namespace)
        if tree is None:
            return
        self.session.execute(delete(AggregateNode).where(AggregateNode.tree_id == tree.id))
        self.session.delete(tree)
        self.session.flush()

    def clear_all(self, max_node_size: int, root_lazy: bool) -> None:
        """Drop every tree of the aggregate and reconfigure new trees."""
        if max_node_size < 2:
            raise ValueError("max_node_size must be at least 2")
        self.session.flush()
        tree_ids = select(AggregateTree.id).where(
            AggregateTree.aggregate_name == self.aggregate_name
        )
        self.session.execute(
            delete(AggregateNode)
            .where(AggregateNode.tree_id.in_(tree_ids))
            .execution_options(synchronize_session="fetch")
        )
        self.session.execute(
            delete(AggregateTree).where(AggregateTree.aggregate_name == self.aggregate_name)
        )

        config = self.session.get(AggregateConfig, self.aggregate_name)
        if config is None:
            config = AggregateConfig(aggregate_name=self.aggregate_name)
            self.session.add(config)
        config.max_node_size = max_node_size
        config.root_lazy = root_lazy
        config.cleared_at = func.now()
        self.session.flush()

    def verify(self, namespace: str) -> int:
        """Check structural invariants of one tree and return its size.

        Raises AggregateError on a key out of order, a wrong stored count,
        an under/overfull node or leaves at different depths.
        """
        tree = self._tree(namespace)
        if tree is None:
            return 0
        root = self._node(tree.root_id)
        min_items = tree.max_node_size // 2
        leaf_depths: set[int] = set()

        def check(node: AggregateNode, depth: int, is_root: bool) -> int:
            keys = _keys(node)
            if keys != sorted(keys):
                raise AggregateError(f"Unordered node {node.id}")
            if len(keys) > tree.max_node_size:
                raise AggregateError(f"Overfull node {node.id}")
            if not is_root and len(keys) < min_items:
                raise AggregateError(f"Underfull node {node.id}")
            if _is_leaf(node):
                leaf_depths.add(depth)
                size = len(keys)
            else:
                if len(node.subtrees) != len(keys) + 1:
                    raise AggregateError(f"Fan-out mismatch at node {node.id}")
                size = len(keys)
                for i, child_id in enumerate(node.subtrees):
                    child = self._node(child_id)
                    child_keys = _keys(child)
                    if child_keys and i > 0 and child_keys[0] <= keys[i - 1]:
                        raise AggregateError(f"Separator order broken at node {node.id}")
                    if child_keys and i < len(keys) and child_keys[-1] >= keys[i]:
                        raise AggregateError(f"Separator order broken at node {node.id}")
                    size += check(child, depth + 1, False)
            if is_root and tree.root_lazy:
                if node.count is not None:
                    raise AggregateError(f"Lazy root {node.id} has a stored count")
            elif node.count != size:
                raise AggregateError(
                    f"Count mismatch at node {node.id}: stored {node.count}, actual {size}"
                )
            return size

        size = check(root, 0, True)
        if len(leaf_depths) > 1:
            raise AggregateError("Leaves at different depths")
        return size
