from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional
import logging

from effinfer.errors import CompileError, effect_mismatch

logger = logging.getLogger(__name__)


class EffectReporter(ABC):
    """Sink for effect mismatch errors.

    Reporting marks the offending tree as erroneous so later passes can skip it.
    """

    @abstractmethod
    def issue_error(self, tree: Any, error: CompileError) -> None:
        ...

    @abstractmethod
    def set_error(self, tree: Any) -> None:
        ...

    def error(self, expected: str, found: str, tree: Any, details: Optional[str] = None) -> None:
        err = effect_mismatch(expected, found, tree, details)
        self.issue_error(tree, err)
        self.set_error(tree)


class CollectingReporter(EffectReporter):
    """Accumulates diagnostics for a single analysis run"""

    def __init__(self):
        self.errors: list[CompileError] = []
        self._erroneous: dict[int, Any] = {}

    def issue_error(self, tree: Any, error: CompileError) -> None:
        logger.debug(f"Effect mismatch at {error.location or type(tree).__name__}")
        self.errors.append(error)

    def set_error(self, tree: Any) -> None:
        self._erroneous[id(tree)] = tree

    def is_erroneous(self, tree: Any) -> bool:
        return id(tree) in self._erroneous

    @property
    def erroneous(self) -> list[Any]:
        return list(self._erroneous.values())

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)
