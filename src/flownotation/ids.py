"""
Id generation for parsed flow graphs.

The parser never keeps a counter of its own. It asks an id factory (any
zero-argument callable returning a string) for every node and edge id, so
that repeated or concurrent parses in one process cannot collide and tests
can inject predictable ids.
"""

from typing import Callable

IdFactory = Callable[[], str]

_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def to_base36(value: int) -> str:
    """Render a non-negative integer in lowercase base 36."""
    if value < 0:
        raise ValueError("value must be non-negative")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_DIGITS[remainder])
    return "".join(reversed(digits))


class IdSequence:
    """
    Monotonic id generator.

    Each call returns "<prefix>-<n>", n counting from 1 in base 36 and
    zero-padded to ``width`` characters.

    Example:
        >>> ids = IdSequence()
        >>> ids(), ids()
        ('ascii-0001', 'ascii-0002')
    """

    def __init__(self, prefix: str = "ascii", width: int = 4, start: int = 0):
        if width < 1:
            raise ValueError("width must be at least 1")
        if start < 0:
            raise ValueError("start must be non-negative")
        self.prefix = prefix
        self.width = width
        self._start = start
        self._counter = start

    def __call__(self) -> str:
        self._counter += 1
        return f"{self.prefix}-{to_base36(self._counter).rjust(self.width, '0')}"

    @property
    def issued(self) -> int:
        """Number of ids handed out since creation or the last reset."""
        return self._counter - self._start

    def reset(self) -> None:
        """Restart the sequence from its initial value."""
        self._counter = self._start
