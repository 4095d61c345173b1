"""Argument guards shared by the stores and the application services."""

from collections.abc import Iterable

from .errors import InvalidArgumentError


def require_positive_id(name: str, value: int | None) -> int:
    if value is None:
        raise InvalidArgumentError(f"{name} is required")
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgumentError(f"{name} must be an integer, got: {value!r}")
    if value <= 0:
        raise InvalidArgumentError(f"{name} must be positive, got: {value}")
    return value


def require_positive_ids(name: str, values: Iterable[int] | None) -> list[int]:
    if values is None:
        raise InvalidArgumentError(f"{name} is required")
    return [require_positive_id(name, v) for v in values]


def require_non_negative(name: str, value: int | None) -> int:
    if value is None:
        raise InvalidArgumentError(f"{name} is required")
    if value < 0:
        raise InvalidArgumentError(f"{name} cannot be negative, got: {value}")
    return value


def require_positive_count(name: str, value: int | None) -> int:
    if value is None:
        raise InvalidArgumentError(f"{name} is required")
    if value <= 0:
        raise InvalidArgumentError(f"{name} must be positive, got: {value}")
    return value


def require_present(name: str, value):
    if value is None:
        raise InvalidArgumentError(f"{name} is required")
    return value


def validate_session_counters(
    viewed: int, correct: int, hard: int, duration_ms: int, answer_delay_ms: int
) -> None:
    """Counters of one session: non-negative, and each outcome within viewed."""
    require_non_negative("viewed", viewed)
    require_non_negative("correct", correct)
    require_non_negative("hard", hard)
    require_non_negative("duration_ms", duration_ms)
    require_non_negative("answer_delay_ms", answer_delay_ms)
    if correct > viewed:
        raise InvalidArgumentError(f"correct ({correct}) cannot exceed viewed ({viewed})")
    if hard > viewed:
        raise InvalidArgumentError(f"hard ({hard}) cannot exceed viewed ({viewed})")
