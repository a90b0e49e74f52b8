from logging import getLogger
from typing import Callable

from shortener.errors import GenerationExhausted, UniquenessViolation
from shortener.generators import CodeGenerator, GenerationContext
from shortener.schemas import LinkRecord
from shortener.store import LinkStore

logger = getLogger('shortener_uniqueness')


class UniquenessResolver:
    """Draws candidate codes until one is free in the store, within a fixed attempt budget.

    The ``exists`` check only filters obvious collisions. Two creators can
    still race between the check and the insert, so ``create`` relies on the
    store's insert rejecting duplicates and spends another attempt when it does.
    """

    def __init__(self, store: LinkStore):
        self.store = store

    async def resolve(self, generator: CodeGenerator, context: GenerationContext, max_attempts: int) -> str:
        for attempt in range(1, max_attempts + 1):
            candidate = generator.generate(context)
            if not await self.store.exists(candidate):
                return candidate
            logger.debug(f"Collision occurred on {candidate} (attempt {attempt}/{max_attempts}), retrying")
        raise GenerationExhausted(max_attempts)

    async def create(self, generator: CodeGenerator, context: GenerationContext,
                     build: Callable[[str], LinkRecord], max_attempts: int) -> LinkRecord:
        for attempt in range(1, max_attempts + 1):
            candidate = generator.generate(context)
            if await self.store.exists(candidate):
                logger.debug(f"Collision occurred on {candidate} (attempt {attempt}/{max_attempts}), retrying")
                continue
            try:
                return await self.store.insert(build(candidate))
            except UniquenessViolation:
                logger.debug(f"Lost insert race for {candidate} (attempt {attempt}/{max_attempts}), retrying")
        raise GenerationExhausted(max_attempts)
