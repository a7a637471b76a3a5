"""Tests for the persisted order-statistics B-tree."""

import random

import pytest

from ortoqbank.aggregates.btree import (
    DEFAULT_MAX_NODE_SIZE,
    AggregateBTree,
    Bounds,
)
from ortoqbank.core.exceptions import AggregateError
from ortoqbank.models.aggregate import AggregateNode, AggregateTree


@pytest.fixture
def small_tree(db) -> AggregateBTree:
    """Tree with fan-out 4 so a few dozen entries force several levels."""
    tree = AggregateBTree(db, "test_small")
    tree.clear_all(max_node_size=4, root_lazy=True)
    return tree


def _depth(db, tree: AggregateBTree, namespace: str) -> int:
    record = db.query(AggregateTree).filter_by(
        aggregate_name=tree.aggregate_name, namespace=namespace
    ).one()
    node = db.get(AggregateNode, record.root_id)
    depth = 1
    while node.subtrees:
        node = db.get(AggregateNode, node.subtrees[0])
        depth += 1
    return depth


def test_empty_namespace_counts_zero(db):
    tree = AggregateBTree(db, "test_empty")
    assert tree.count("nobody") == 0
    assert list(tree.entries("nobody")) == []
    assert tree.verify("nobody") == 0


def test_new_tree_uses_defaults_without_config(db):
    tree = AggregateBTree(db, "test_defaults")
    tree.insert("ns", (1, 1))

    record = db.query(AggregateTree).filter_by(aggregate_name="test_defaults").one()
    assert record.max_node_size == DEFAULT_MAX_NODE_SIZE
    assert record.root_lazy is True


def test_inserts_split_and_keep_order(db, small_tree):
    keys = [(i % 7, i) for i in range(60)]
    random.Random(7).shuffle(keys)

    for key in keys:
        small_tree.insert("u1", key)

    assert small_tree.verify("u1") == 60
    assert small_tree.count("u1") == 60
    assert list(small_tree.entries("u1")) == sorted(keys)
    assert _depth(db, small_tree, "u1") >= 3


def test_range_counts_match_brute_force(small_tree):
    keys = [(i % 10, i) for i in range(45)]
    for key in keys:
        small_tree.insert("u1", key)

    cases = [
        Bounds(lower=3, upper=7),
        Bounds(lower=3),
        Bounds(upper=3),
        Bounds(lower=0, upper=0),
        Bounds.eq(4),
        Bounds(lower=2, upper=8, lower_inclusive=False, upper_inclusive=True),
        Bounds(lower=20),
    ]
    for bounds in cases:
        expected = sum(1 for sort_key, _ in keys if bounds.contains(sort_key))
        assert small_tree.count("u1", bounds) == expected, bounds


def test_deletes_merge_and_shrink(db, small_tree):
    keys = [(0, i) for i in range(50)]
    for key in keys:
        small_tree.insert("u1", key)
    tall = _depth(db, small_tree, "u1")

    random.Random(11).shuffle(keys)
    for remaining, key in enumerate(reversed(keys)):
        small_tree.delete("u1", key)
        assert small_tree.verify("u1") == len(keys) - remaining - 1

    assert small_tree.count("u1") == 0
    assert _depth(db, small_tree, "u1") == 1
    assert tall > 1


def test_interleaved_writes_keep_invariants(small_tree):
    rng = random.Random(3)
    present: set[tuple[int, int]] = set()
    for row_id in range(200):
        if present and rng.random() < 0.4:
            key = rng.choice(sorted(present))
            small_tree.delete("u1", key)
            present.discard(key)
        else:
            key = (rng.randint(0, 5), row_id)
            small_tree.insert("u1", key)
            present.add(key)

    assert small_tree.verify("u1") == len(present)
    assert list(small_tree.entries("u1")) == sorted(present)


def test_eager_root_stores_count(db):
    tree = AggregateBTree(db, "test_eager")
    tree.clear_all(max_node_size=3, root_lazy=False)
    for i in range(20):
        tree.insert("ns", (1, i))

    record = db.query(AggregateTree).filter_by(aggregate_name="test_eager").one()
    assert db.get(AggregateNode, record.root_id).count == 20
    assert tree.verify("ns") == 20

    for i in range(15):
        tree.delete("ns", (1, i))
    assert tree.verify("ns") == 5


def test_namespaces_are_isolated(small_tree):
    for i in range(10):
        small_tree.insert("u1", (0, i))
    for i in range(3):
        small_tree.insert("u2", (0, i))

    assert small_tree.count("u1") == 10
    assert small_tree.count("u2") == 3
    assert small_tree.namespaces() == ["u1", "u2"]


def test_duplicate_insert_is_rejected(small_tree):
    small_tree.insert("u1", (1, 1))
    with pytest.raises(AggregateError):
        small_tree.insert("u1", (1, 1))
    assert small_tree.count("u1") == 1


def test_delete_of_missing_entry_is_rejected(small_tree):
    with pytest.raises(AggregateError):
        small_tree.delete("u1", (1, 1))
    small_tree.insert("u1", (1, 1))
    with pytest.raises(AggregateError):
        small_tree.delete("u1", (1, 2))


def test_clear_drops_one_namespace(db, small_tree):
    for i in range(12):
        small_tree.insert("u1", (0, i))
        small_tree.insert("u2", (0, i))

    small_tree.clear("u1")

    assert small_tree.count("u1") == 0
    assert small_tree.count("u2") == 12
    assert small_tree.namespaces() == ["u2"]


def test_clear_all_resets_configuration(db, small_tree):
    for i in range(12):
        small_tree.insert("u1", (0, i))

    small_tree.clear_all(max_node_size=8, root_lazy=False)

    assert small_tree.count("u1") == 0
    assert small_tree.namespaces() == []
    small_tree.insert("u1", (0, 1))
    record = db.query(AggregateTree).filter_by(aggregate_name="test_small").one()
    assert record.max_node_size == 8
    assert record.root_lazy is False


def test_clear_all_rejects_tiny_fanout(small_tree):
    with pytest.raises(ValueError):
        small_tree.clear_all(max_node_size=1, root_lazy=True)


def test_verify_detects_count_drift(db, small_tree):
    for i in range(10):
        small_tree.insert("u1", (0, i))
    record = db.query(AggregateTree).filter_by(aggregate_name="test_small").one()
    root = db.get(AggregateNode, record.root_id)
    child = db.get(AggregateNode, root.subtrees[0])
    child.count += 1
    db.flush()

    with pytest.raises(AggregateError):
        small_tree.verify("u1")
