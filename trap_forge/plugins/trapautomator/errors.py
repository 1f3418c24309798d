from __future__ import annotations


class TrapAutomatorError(Exception):
    """Base class for everything the trap automator raises on purpose."""


class ValidationFailure(TrapAutomatorError, ValueError):
    """
    A user-supplied value is unusable (empty identifier, duplicate key,
    missing required field) or a required selection has no candidates.
    The current workflow step should be aborted.
    """


class CategoryCycleError(ValidationFailure):
    def __init__(self, chain):
        self.chain = list(chain)
        super().__init__("Category primary chain loops back on itself: " + " -> ".join(self.chain))


class NotFoundFailure(TrapAutomatorError, KeyError):
    """A referenced definition, category, trigger or actor cannot be resolved."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the message readable.
        return str(self.args[0]) if self.args else ""


class PersistenceFailure(TrapAutomatorError, OSError):
    """Writing the override layer failed. The in-memory store is not rolled back."""
