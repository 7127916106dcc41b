import logging
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from shared.observability import bookstore_saga_compensation_total

logger = logging.getLogger(__name__)

C = TypeVar("C")

Action = Callable[[C], Awaitable[None]]


class SagaStep(Generic[C]):
    def __init__(self, name: str, action: Action, compensation: Optional[Action] = None):
        self.name = name
        self.action = action
        self.compensation = compensation


class SagaOrchestrator(Generic[C]):
    def __init__(self):
        self.steps: list[SagaStep[C]] = []

    def add_step(self, name: str, action: Action, compensation: Optional[Action] = None):
        """Builder pattern to add a step and its rollback compensation."""
        self.steps.append(SagaStep(name, action, compensation))
        return self

    async def execute(self, ctx: C) -> C:
        """Executes steps sequentially. Triggers rollback on any exception."""
        executed_steps = []
        step = None
        try:
            for step in self.steps:
                await step.action(ctx)
                executed_steps.append(step)
            return ctx
        except Exception as e:
            logger.error("Saga execution failed at step '%s': %s", step.name if step else "?", e)
            await self._rollback(executed_steps, ctx)
            raise

    async def _rollback(self, executed_steps: list, ctx: C):
        """Executes compensations in reverse order. Wraps each in a try/except."""
        logger.info("Initiating Saga Rollback...")
        for step in reversed(executed_steps):
            if step.compensation:
                try:
                    await step.compensation(ctx)
                    logger.info("Rollback successful for step '%s'", step.name)
                    bookstore_saga_compensation_total.labels(step_name=step.name).inc()
                except Exception as ce:
                    # A failing compensation MUST NOT block other compensations
                    logger.critical(
                        "CRITICAL: Compensation failed for '%s'. Manual intervention may be required. Error: %s",
                        step.name,
                        ce,
                    )
