"""Create tables and seed the active priority weights."""
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from intake_planner.config import get_settings
from intake_planner.database import get_engine
from intake_planner.repositories.sql import SqlStorage
from intake_planner.schemas.weights import PriorityWeights


async def seed():
    settings = get_settings()
    storage = SqlStorage(get_engine())
    await storage.start(
        PriorityWeights(
            impact_weight=settings.default_impact_weight,
            frequency_weight=settings.default_frequency_weight,
            urgency_weight=settings.default_urgency_weight,
        )
    )
    async with storage.session() as repos:
        weights = await repos.weights.get_active()
    await storage.close()
    print(f"Active priority weights: {weights.model_dump()}")


if __name__ == "__main__":
    asyncio.run(seed())
