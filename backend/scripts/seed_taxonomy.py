"""Import the taxonomy from a legacy flat JSON export.

The export holds one list per level, each row carrying its legacy id and
its parent's legacy id:

    {"themes": [{"id": "t1", "name": "Ombro", "prefix": "OMB"}],
     "subthemes": [{"id": "s1", "name": "Manguito", "theme_id": "t1"}],
     "groups": [{"id": "g1", "name": "Lesões", "subtheme_id": "s1"}]}

Running it twice creates nothing the second time.

Usage:
    python scripts/seed_taxonomy.py export.json [--dry-run]
"""

import argparse
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from ortoqbank.core.logging import get_logger, setup_logging  # noqa: E402
from ortoqbank.db.session import open_session  # noqa: E402
from ortoqbank.schemas.taxonomy import LegacyTaxonomyExport  # noqa: E402
from ortoqbank.services.migration import populate_taxonomy_from_legacy  # noqa: E402

logger = get_logger(__name__)


def seed_taxonomy(path: Path, dry_run: bool) -> dict:
    export = LegacyTaxonomyExport.model_validate(json.loads(path.read_text(encoding="utf-8")))
    try:
        with open_session() as db:
            return populate_taxonomy_from_legacy(db, export, dry_run=dry_run)
    except Exception:
        logger.error("seed_taxonomy_failed", exc_info=True)
        raise


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Import taxonomy from a legacy JSON export")
    parser.add_argument("export", type=Path, help="Path to the legacy export JSON file")
    parser.add_argument("--dry-run", action="store_true", help="Report without writing")
    args = parser.parse_args()

    setup_logging()
    result = seed_taxonomy(args.export, args.dry_run)
    print(
        f"themes: {result['themes_created']}, subthemes: {result['subthemes_created']}, "
        f"groups: {result['groups_created']}, existing: {result['existing']}"
        + (" (dry run)" if result["dry_run"] else "")
    )
    for error in result["errors"]:
        print(f"  error: {error}")
    sys.exit(1 if result["errors"] else 0)
