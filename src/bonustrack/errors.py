"""Exceptions raised by the bonus lifecycle."""


class BonusError(Exception):
    """Base class for bonus lifecycle errors."""


class IllegalTransitionError(BonusError):
    """A status change that the transition table does not allow."""

    def __init__(self, from_status: str, to_status: str) -> None:
        self.from_status = str(from_status)
        self.to_status = str(to_status)
        super().__init__(
            f"Illegal status transition: {self.from_status} -> {self.to_status}"
        )


class ConflictError(BonusError):
    """A conditional status write found a different persisted status."""

    def __init__(self, bonus_id: str, expected: str, actual: str) -> None:
        self.bonus_id = bonus_id
        self.expected = str(expected)
        self.actual = str(actual)
        super().__init__(
            f"Bonus {bonus_id} is {self.actual}, expected {self.expected}"
        )


class BonusNotFoundError(BonusError):
    """No bonus exists with the given id."""

    def __init__(self, bonus_id: str) -> None:
        self.bonus_id = bonus_id
        super().__init__(f"Bonus not found: {bonus_id}")


class UnknownStatusError(BonusError, ValueError):
    """A stored status string is not one of the known statuses."""

    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"Unknown bonus status: {value!r}")
