from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional


class SheetforgeError(Exception):
    pass


class EvaluationError(SheetforgeError):
    """The arithmetic evaluator or the dice roller rejected an expression."""

    def __init__(self, expression: str, message: str):
        super().__init__(message)
        self.expression = expression
        self.message = message


class CircularDependencyError(SheetforgeError):
    """A formula edit was refused because it would make the formula graph cyclic."""

    def __init__(self, stat_id: int, path: Optional[List[int]] = None):
        self.stat_id = stat_id
        self.path = list(path or [])
        chain = " -> ".join(str(p) for p in self.path) if self.path else str(stat_id)
        super().__init__(f"formula of stat {stat_id} would create a circular dependency ({chain})")


class UnknownStatError(SheetforgeError, KeyError):
    def __init__(self, stat_id: int):
        super().__init__(stat_id)
        self.stat_id = stat_id

    def __str__(self) -> str:
        return f"stat {self.stat_id} does not exist"


# -----------------------------
# Validation issues
# -----------------------------

IssueKind = Literal[
    "StructuralError", "DuplicateIdError", "RangeError", "OptionLimitExceeded",
    "DuplicateOptionValue", "CircularDependencyError", "UnresolvedReferenceError",
    "TypeMismatchError", "EvaluationError",
]


@dataclass(frozen=True)
class SchemaIssue:
    kind: IssueKind
    path: str           # e.g. "stats[3].options[1].value"
    message: str
    context: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return format_issue(self)


def format_issue(issue: SchemaIssue) -> str:
    return f"{issue.path}: {issue.message}" if issue.path else issue.message
