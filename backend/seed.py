import asyncio
import logging

from foosball import db
from foosball.services import seed_sample_players

logger = logging.getLogger(__name__)


async def main():
    async with db.session_factory()() as session:
        added = await seed_sample_players(session)
    if added:
        logger.info("Seeded %d sample players", added)
    else:
        logger.info("Players already present; nothing to seed")
    if db.engine is not None:
        await db.engine.dispose()

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
