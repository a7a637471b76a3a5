"""Clear and rebuild every aggregate tree from the source tables.

Run in a maintenance window: writes made while the rebuild runs are not
reflected in the rebuilt trees.

Usage:
    python scripts/rebuild_aggregates.py [--max-node-size 16] [--eager-root]
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from ortoqbank.aggregates.registry import build_aggregate_registry, build_triggers  # noqa: E402
from ortoqbank.core.logging import get_logger, setup_logging  # noqa: E402
from ortoqbank.db.context import DataContext  # noqa: E402
from ortoqbank.db.session import open_session  # noqa: E402
from ortoqbank.services.migration import rebuild_aggregates  # noqa: E402

logger = get_logger(__name__)


def rebuild(max_node_size: int | None, root_lazy: bool | None) -> dict[str, int]:
    aggregates = build_aggregate_registry()
    try:
        with open_session() as db:
            ctx = DataContext(db=db, aggregates=aggregates, triggers=build_triggers(aggregates))
            return rebuild_aggregates(ctx, max_node_size=max_node_size, root_lazy=root_lazy)
    except Exception:
        logger.error("rebuild_aggregates_failed", exc_info=True)
        raise


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Rebuild aggregate counters")
    parser.add_argument("--max-node-size", type=int, default=None, help="B-tree fan-out")
    parser.add_argument(
        "--eager-root",
        action="store_true",
        help="Store the root count (default keeps the root lazy)",
    )
    args = parser.parse_args()

    setup_logging()
    counts = rebuild(args.max_node_size, False if args.eager_root else None)
    for name, count in counts.items():
        print(f"{name}: {count}")
