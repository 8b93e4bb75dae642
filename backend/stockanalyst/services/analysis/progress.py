"""
Step progress for one analysis run.

Holds the six LoadingSteps in pipeline order and notifies subscribers
whenever one of them changes.
"""

import logging
from typing import Callable, Optional

from stockanalyst.schemas.analysis import LoadingStep, StepStatus

logger = logging.getLogger(__name__)

STEP_DEFINITIONS: list[tuple[str, str]] = [
    ("check_cache", "Checking for recent analysis"),
    ("fetch_historical", "Fetching historical data (est. 10s)"),
    ("generate_trend", "Generating trend analysis (est. 1min)"),
    ("generate_sr", "Analyzing support & resistance (est. 1min)"),
    ("generate_strategy", "Generating trading strategies (est. 1min)"),
    ("saving", "Saving results"),
]

StepCallback = Callable[[LoadingStep], None]


class AnalysisProgress:
    """Mutable step list owned by a single pipeline invocation."""

    def __init__(self):
        self._steps: dict[str, LoadingStep] = {}
        self._subscribers: list[StepCallback] = []
        self.reset()

    def subscribe(self, callback: StepCallback) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: StepCallback) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def reset(self) -> None:
        """Put every step back to pending."""
        self._steps = {
            step_id: LoadingStep(id=step_id, label=label)
            for step_id, label in STEP_DEFINITIONS
        }

    def update(self, step_id: str, status: StepStatus, error: Optional[str] = None) -> LoadingStep:
        """
        Change one step's status.

        Raises:
            KeyError: unknown step id
        """
        if step_id not in self._steps:
            raise KeyError(step_id)

        step = self._steps[step_id].model_copy(update={"status": status, "error": error})
        self._steps[step_id] = step
        logger.debug(f"Step {step_id} -> {status.value}")

        for callback in list(self._subscribers):
            callback(step.model_copy())
        return step

    def complete_all(self) -> None:
        """Mark every step that is not yet completed as completed."""
        for step_id, step in self._steps.items():
            if step.status != StepStatus.COMPLETED:
                self.update(step_id, StepStatus.COMPLETED)

    def get(self, step_id: str) -> LoadingStep:
        return self._steps[step_id].model_copy()

    def snapshot(self) -> list[LoadingStep]:
        """Copies of all steps, in pipeline order."""
        return [step.model_copy() for step in self._steps.values()]
