"""
Step log with compensations for multi-step operations.

Creation flows touch several external resources (model, bucket, document
store) without a transaction. Each completed step is recorded together
with the action that undoes it; on failure the log is replayed in reverse.

Example:
    >>> saga = Saga("create-character-pair")
    >>> await blobs.upload(path, data, "image/jpeg")
    >>> saga.record(f"upload {path}", lambda: blobs.delete(path))
    >>> try:
    ...     await repo.create(record)
    ... except Exception:
    ...     await saga.compensate()
    ...     raise
"""

from dataclasses import dataclass, field
from typing import Awaitable, Callable, List

from loguru import logger

from .exceptions import CompensationError

Compensation = Callable[[], Awaitable[object]]


@dataclass
class SagaStep:
    """A completed step and the action that reverses it."""
    description: str
    compensation: Compensation
    compensated: bool = False
    error: BaseException | None = None


@dataclass
class Saga:
    """Ordered log of completed steps for one operation."""
    name: str
    steps: List[SagaStep] = field(default_factory=list)

    def record(self, description: str, compensation: Compensation) -> SagaStep:
        """Record a step that has already succeeded."""
        step = SagaStep(description=description, compensation=compensation)
        self.steps.append(step)
        return step

    @property
    def pending(self) -> List[SagaStep]:
        return [s for s in self.steps if not s.compensated]

    async def compensate(self) -> List[SagaStep]:
        """
        Undo every recorded step, newest first.

        All compensations are attempted even if some fail.

        Returns:
            The steps that were compensated successfully

        Raises:
            CompensationError: If at least one compensation failed
        """
        done: List[SagaStep] = []
        failed: List[SagaStep] = []

        for step in reversed(self.pending):
            try:
                await step.compensation()
            except Exception as e:
                step.error = e
                failed.append(step)
                logger.error(f"[{self.name}] compensation failed for '{step.description}': {e}")
                continue
            step.compensated = True
            done.append(step)
            logger.info(f"[{self.name}] compensated '{step.description}'")

        if failed:
            raise CompensationError(
                self.name,
                [s.description for s in failed],
                [s.error for s in failed if s.error is not None],
            )
        return done
