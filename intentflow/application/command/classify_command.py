"""
Use case: Classify a free-text command into an intent.

Input: ClassifyCommandQuery (text)
Output: Intent
Side effects: None.
Failure cases: None. Unmatched text yields an ``unknown`` intent.
"""

import logging

from intentflow.application.command.dtos import ClassifyCommandQuery
from intentflow.domain.command.entities import Intent
from intentflow.domain.command.ports import CommandInterpreterPort

logger = logging.getLogger(__name__)


class ClassifyCommandUseCase:
    """Delegates classification to the injected interpreter."""

    def __init__(self, interpreter: CommandInterpreterPort) -> None:
        self._interpreter = interpreter

    def execute(self, query: ClassifyCommandQuery) -> Intent:
        """Run the classification use case.

        Args:
            query: The command to classify.

        Returns:
            The classified intent.
        """
        intent = self._interpreter.classify(query.text)
        logger.info(
            "Classified command: category=%s confidence=%.2f",
            intent.category.value,
            intent.confidence,
        )
        return intent
