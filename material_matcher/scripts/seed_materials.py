#!/usr/bin/env python3
"""
Material Seed Script
Generates random construction materials and ingests them.

Usage:
    python -m material_matcher.scripts.seed_materials 50
    python -m material_matcher.scripts.seed_materials 5 --dry-run --seed 7
"""

import argparse
import json
import logging
import random
import sys
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from material_matcher.models.material import MaterialBase

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

TYPES = ["A", "B", "C", "D", "E", "F", "G", "H"]
CATEGORY_CODES = ["01", "02", "03", "04", "05", "06", "07", "08", "09"]
SUB_CATEGORY_CODES = ["01", "02", "03", "04", "05"]

MATERIAL_NAMES = [
    "steel beam", "wooden plank", "concrete slab", "insulation panel", "ceramic tiles",
    "glass panel", "aluminum frame", "plastic sheet", "copper wire", "rubber gasket",
    "stone block", "metal bracket", "foam padding", "vinyl flooring", "tile adhesive",
    "plywood sheet", "drywall panel", "roofing shingle", "door frame", "window sill",
    "paint bucket", "gravel aggregate", "sand bag", "cement mix", "mortar blend",
    "brick unit", "paver stone", "marble slab", "granite countertop", "laminate board",
]

DESCRIPTIONS = [
    "high quality construction material",
    "durable and weather resistant",
    "eco-friendly and sustainable",
    "industrial grade component",
    "premium quality material",
    "cost-effective solution",
    "heavy duty construction element",
    "lightweight and portable",
    "corrosion resistant material",
    "fire-rated building component",
]


def generate_materials(count: int, seed: Optional[int] = None) -> List[MaterialBase]:
    """
    Generate random materials located in Switzerland.

    Args:
        count: Number of materials
        seed: Random seed for reproducible output

    Returns:
        Validated query-form materials
    """
    rng = random.Random(seed)
    now = datetime.now(timezone.utc).replace(microsecond=0)

    materials = []
    for _ in range(count):
        available_from = now + timedelta(days=rng.randint(0, 60))
        payload = {
            "name": rng.choice(MATERIAL_NAMES),
            "description": rng.choice(DESCRIPTIONS),
            "ebkp": {
                "type": rng.choice(TYPES),
                "categoryCode": rng.choice(CATEGORY_CODES),
                "subCategoryCode": rng.choice(SUB_CATEGORY_CODES),
            },
            "price": float(rng.randint(10, 509)),
            "quality": round(rng.uniform(0.5, 1.0), 2),
            "quantity": rng.randint(1, 20),
            "size": {
                "width": rng.randint(10, 309),
                "height": rng.randint(5, 404),
                "depth": rng.randint(1, 100),
            },
            "location": {
                "latitude": round(46 + rng.random() * 2, 4),
                "longitude": round(6 + rng.random() * 3, 4),
            },
            "availableTime": {
                "from": available_from.isoformat(),
                "to": (available_from + timedelta(days=rng.randint(7, 90))).isoformat(),
            },
        }
        materials.append(MaterialBase.model_validate(payload))

    return materials


def main(argv: Optional[List[str]] = None) -> int:
    """Main function to run the seeding."""
    parser = argparse.ArgumentParser(description="Generate and ingest random materials")
    parser.add_argument("count", type=int, nargs="?", default=20, help="Number of materials")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument(
        "--dry-run", action="store_true", help="Print the generated JSON without ingesting"
    )

    args = parser.parse_args(argv)

    if args.count < 1:
        logger.error("Count must be at least 1")
        return 1

    materials = generate_materials(args.count, seed=args.seed)

    if args.dry_run:
        payload = {"materials": [m.model_dump(mode="json", by_alias=True) for m in materials]}
        print(json.dumps(payload, indent=2))
        return 0

    # ML stack is only needed past --dry-run
    from material_matcher.api.services.text_encoder import get_text_encoder_service
    from material_matcher.db.repository import MaterialRepository
    from material_matcher.db.session import get_session_factory
    from material_matcher.ingestion import MaterialIngestionService
    from material_matcher.ml.config import get_ml_config
    from material_matcher.ml.retrieval import get_index_manager

    config = get_ml_config()
    index_set = get_index_manager(config)
    service = MaterialIngestionService(index_set, get_text_encoder_service(), config)

    session = get_session_factory()()
    try:
        stats = service.add_materials(materials, MaterialRepository(session))
    finally:
        session.close()

    # Always persist, regardless of INDEX_PERSIST
    index_set.save(config.storage.index_dir)

    logger.info(f"Seeded {len(stats.ids)} materials ({stats.index_entries} index entries)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
