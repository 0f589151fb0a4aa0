import logging

from discord.ext import commands

from config import config
from models import RunRecord

from .bot import Tally

__all__ = ["Tally", "Cog"]

logger = logging.getLogger("tally")


class Cog(commands.Cog):
    """
    A base class for all cogs in Tally.
    """

    RUNS_REDIS_PREFIX: str = "tally:runs"
    REDIS_TTL: int = config["cache"]["ttl"]  # seconds

    def __init__(self, bot: Tally) -> None:
        self.bot = bot

        # Redis instance wrapper
        self.redis = bot.redis

        # Ledger operations backed by MongoDB
        self.ledger = bot.ledger

    async def get_or_fetch_run(self, run_number: int) -> RunRecord:
        """
        Fetch a run by its number. Uses cache if available.

        Args:
            run_number (int): The run number shown to users.

        Returns:
            RunRecord: The run.

        Raises:
            NotFoundError: If no run has that number.
        """

        key = f"{self.RUNS_REDIS_PREFIX}:{run_number}"

        try:
            cached = await self.redis.get(key)
            if cached:
                return RunRecord.model_validate_json(cached)
        except Exception:
            logger.exception(f"[CACHE] Error Reading Cached Run: #{run_number}")

        run = await self.ledger.get_run_by_number(run_number)

        try:
            await self.redis.set(key, run.model_dump_json(), ex=self.REDIS_TTL)
        except Exception:
            logger.exception(f"[CACHE] Error Caching Run: #{run_number}")

        return run

    async def invalidate_run(self, run_number: int) -> None:
        """
        Drop a run from the cache after it changed.

        Args:
            run_number (int): The run number to invalidate.
        """

        await self.redis.delete(f"{self.RUNS_REDIS_PREFIX}:{run_number}")
