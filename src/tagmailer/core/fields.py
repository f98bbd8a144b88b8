# =============================================================================
# Message Fields
# =============================================================================
# Small mutable containers used by MailBuilder to hold field state while a
# message is being built.
#
#   - AddressAccumulator: to/cc/bcc. A base value seeds the list at the start
#     of each construction scope; addresses can then be appended or the whole
#     field reset.
#   - Overridable: from/reply-to/subject/server/port. A base value plus at
#     most one override; the last reset wins.
#   - HeaderTable: extra headers, in insertion order, duplicates allowed.
#
# None of these validate anything. Address syntax is checked at send time.
# =============================================================================

from dataclasses import dataclass, field
from typing import Generic, Iterator, TypeVar

T = TypeVar("T")


@dataclass
class AddressAccumulator:
    """
    An ordered multi-value address field.

    Attributes:
        base: Value configured once for the field (may itself be a
              comma-separated list). Seeds the accumulator on begin().

    Example:
        >>> field = AddressAccumulator(base="a@example.com")
        >>> field.begin()
        >>> field.append("b@example.com")
        >>> field.current_value()
        'a@example.com,b@example.com'
        >>> field.reset("c@example.com")
        >>> field.current_value()
        'c@example.com'
    """
    base: str | None = None
    _values: list[str] = field(default_factory=list, repr=False)

    def begin(self) -> None:
        """Discard accumulated addresses and seed with the base value."""
        self._values.clear()
        if self.base:
            self._values.append(self.base)

    def append(self, address: str) -> None:
        """Add one address to the end of the field."""
        self._values.append(address)

    def reset(self, address: str) -> None:
        """Replace everything accumulated so far with a single value."""
        self._values.clear()
        self._values.append(address)

    def current_value(self) -> str:
        """Returns the comma-joined effective value, or "" if none is set."""
        if self._values:
            return ",".join(self._values)
        return self.base or ""

    def __bool__(self) -> bool:
        return bool(self.current_value())


@dataclass
class Overridable(Generic[T]):
    """
    A single-valued field with a base value and an optional override.

    The override is set by reset() during a construction scope and dropped
    by clear() at the start of the next one. Changing the base while an
    override is active does not change the effective value.
    """
    base: T | None = None
    override: T | None = None

    @property
    def value(self) -> T | None:
        """The effective value."""
        if self.override is not None:
            return self.override
        return self.base

    def reset(self, value: T) -> None:
        self.override = value

    def clear(self) -> None:
        self.override = None


class HeaderTable:
    """Ordered (name, value) pairs. Duplicate names are kept."""

    def __init__(self) -> None:
        self._headers: list[tuple[str, str]] = []

    def add(self, name: str, value: str) -> None:
        self._headers.append((name, value))

    def clear(self) -> None:
        self._headers.clear()

    def __iter__(self) -> Iterator[tuple[str, str]]:
        return iter(list(self._headers))

    def __len__(self) -> int:
        return len(self._headers)

    def __repr__(self) -> str:
        return f"HeaderTable({self._headers!r})"
