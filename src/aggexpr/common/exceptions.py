"""Common exceptions for aggregation expression construction and rendering."""

from typing import Any, Iterable


class AggregationExpressionException(Exception):
    """Base exception for all aggregation expression errors."""

    def __init__(self, message: str, *args: Any) -> None:
        self.message = message
        super().__init__(message, *args)

    def __str__(self) -> str:
        return self.message


class InvalidArgumentError(AggregationExpressionException, ValueError):
    """Exception for malformed builder input (raised at construction time)."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Invalid argument: {message}")


class UnresolvedReferenceError(AggregationExpressionException, LookupError):
    """Exception for field references no context in the chain recognizes.

    Carries the unresolved name and "did you mean" suggestions computed
    against the names visible in the resolution chain.
    """

    def __init__(
        self,
        field_name: str,
        available_names: Iterable[str] = (),
    ) -> None:
        self.field_name = field_name
        self.suggestions = suggest_names(field_name, available_names)
        message = f"Unresolved reference: no field '{field_name}' in any context"
        if self.suggestions:
            message += ". Did you mean " + " or ".join(
                f"'{name}'" for name in self.suggestions
            ) + "?"
        super().__init__(message)


class TypeMismatchError(AggregationExpressionException, TypeError):
    """Exception for operands of unexpected shape found at render time.

    Indicates a construction-contract bug (a node built around a raw object
    instead of a literal, field reference or nested expression).
    """

    def __init__(self, message: str) -> None:
        super().__init__(f"Type mismatch: {message}")


class ExpressionSyntaxError(AggregationExpressionException):
    """Exception for syntax errors in an infix expression string."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Syntax error: {message}")


def levenshtein_distance(s1: str, s2: str) -> int:
    """Compute the edit distance between two strings."""
    if len(s1) < len(s2):
        return levenshtein_distance(s2, s1)

    if len(s2) == 0:
        return len(s1)

    previous_row = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1):
        current_row = [i + 1]
        for j, c2 in enumerate(s2):
            insertions = previous_row[j + 1] + 1
            deletions = current_row[j] + 1
            substitutions = previous_row[j] + (c1 != c2)
            current_row.append(min(insertions, deletions, substitutions))
        previous_row = current_row

    return previous_row[-1]


def suggest_names(
    target: str, candidates: Iterable[str], max_distance: int = 2
) -> list[str]:
    """Return up to three candidate names close to *target*, nearest first."""
    scored = sorted(
        (levenshtein_distance(target, name), name)
        for name in set(candidates)
        if name != target
    )
    return [name for dist, name in scored[:3] if dist <= max_distance]
