"""
Deployment Pipeline

Ordered, abort-on-failure execution of deployment steps. Each step may carry
an `is_done` check that inspects chain state; steps whose check already holds
are skipped, so a pipeline interrupted halfway can be run again.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional

from ..exceptions import DeploymentError
from ..logger import get_logger

logger = get_logger(__name__)


@dataclass
class Step:
    """A named deployment action."""
    name: str
    action: Callable[[], Awaitable[Any]]
    is_done: Optional[Callable[[], bool]] = None


@dataclass
class StepResult:
    name: str
    skipped: bool = False
    result: Any = None


@dataclass
class Pipeline:
    """
    Runs steps strictly in order.

    The first step that raises aborts the run with a `DeploymentError`
    naming it; no later step is attempted.
    """
    name: str
    steps: List[Step] = field(default_factory=list)

    def add(
        self,
        name: str,
        action: Callable[[], Awaitable[Any]],
        is_done: Optional[Callable[[], bool]] = None,
    ) -> "Pipeline":
        self.steps.append(Step(name, action, is_done))
        return self

    async def run(self) -> List[StepResult]:
        results: List[StepResult] = []
        logger.info(f"[{self.name}] running {len(self.steps)} steps")

        for index, step in enumerate(self.steps, start=1):
            prefix = f"[{self.name}] {index}/{len(self.steps)} {step.name}"
            try:
                if step.is_done is not None and step.is_done():
                    logger.info(f"{prefix}: already done, skipping")
                    results.append(StepResult(step.name, skipped=True))
                    continue

                result = await step.action()
            except Exception as exception:
                logger.error(f"{prefix}: failed: {exception}")
                raise DeploymentError(step.name, f"{self.name} aborted") from exception

            logger.info(f"{prefix}: done")
            results.append(StepResult(step.name, result=result))

        return results
