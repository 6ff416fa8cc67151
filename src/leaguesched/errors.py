"""Exception types raised by the scheduling engine."""


class SchedulingError(Exception):
    """Base class for every error the engine raises on purpose."""


class InsufficientSlots(SchedulingError):
    """Not enough game days in the season for the rounds to be played.

    Raised before anything is written, so the existing fixture set is
    untouched.
    """

    def __init__(self, needed: int, found: int):
        self.needed = needed
        self.found = found
        super().__init__(
            f"Not enough game days: need {needed}, found {found} "
            f"(short by {self.shortfall})"
        )

    @property
    def shortfall(self) -> int:
        return self.needed - self.found


class StoreError(SchedulingError):
    """The fixture store rejected an operation; nothing was applied."""


class ValidationError(SchedulingError, ValueError):
    """Input violates a precondition of the operation."""


class ConfigError(ValueError):
    """The YAML config is missing a section or holds an invalid value."""
