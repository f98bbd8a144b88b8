# =============================================================================
# Address Parsing
# =============================================================================
# Parses comma-separated address lists like:
#
#   alice@example.com, "Bob, Jr." <bob@example.com>, Carol <carol@example.com>
#
# The heavy lifting is done by email.utils; we add the two things a sender
# needs on top of it:
#   - strictness: every address must look like local@domain
#   - error location: a failure reports the whole input and the offset of
#     the address that broke, so callers can point at it
# =============================================================================

import re
from dataclasses import dataclass
from email.utils import formataddr, parseaddr

# local@domain, with a dotted hostname made of letters, digits and hyphens
ADDR_SPEC_PATTERN = re.compile(
    r"^[^@\s<>(),;:\"\[\]\\]+"
    r"@[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?"
    r"(?:\.[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?)*$"
)


@dataclass(frozen=True)
class Address:
    """
    A parsed email address.

    Attributes:
        addr_spec: The bare address (user@example.com).
        display_name: Optional display name ("Alice").
    """
    addr_spec: str
    display_name: str = ""

    def __str__(self) -> str:
        return formataddr((self.display_name, self.addr_spec))


class AddressParseError(ValueError):
    """
    Raised when an address list can't be parsed.

    Attributes:
        ref: The complete string that was being parsed.
        pos: Offset in ref where the failing address starts.
    """

    def __init__(self, message: str, ref: str, pos: int) -> None:
        super().__init__(f"{message} in string ``{ref}'' at position {pos}")
        self.ref = ref
        self.pos = pos


def split_addresses(text: str) -> list[tuple[str, int]]:
    """
    Split an address list on top-level commas.

    Commas inside quoted strings, angle brackets and comments don't split.

    Returns:
        List of (fragment, offset) pairs; offset is where the stripped
        fragment starts in text. Blank fragments are dropped.
    """
    fragments = []
    start = 0
    in_quote = False
    escaped = False
    angle_depth = 0
    comment_depth = 0

    for i, char in enumerate(text):
        if escaped:
            escaped = False
            continue
        if char == "\\":
            escaped = True
        elif in_quote:
            if char == '"':
                in_quote = False
        elif char == '"':
            in_quote = True
        elif char == "(":
            comment_depth += 1
        elif char == ")" and comment_depth:
            comment_depth -= 1
        elif char == "<":
            angle_depth += 1
        elif char == ">" and angle_depth:
            angle_depth -= 1
        elif char == "," and not angle_depth and not comment_depth:
            fragments.append((text[start:i], start))
            start = i + 1

    fragments.append((text[start:], start))

    result = []
    for fragment, offset in fragments:
        stripped = fragment.strip()
        if stripped:
            result.append((stripped, offset + len(fragment) - len(fragment.lstrip())))
    return result


def parse_addresses(text: str) -> list[Address]:
    """
    Parse a comma-separated list of addresses.

    Args:
        text: The address list.

    Returns:
        Parsed addresses, in order.

    Raises:
        AddressParseError: On the first address that isn't valid.

    Example:
        >>> parse_addresses("a@example.com, Bob <b@example.com>")
        [Address(addr_spec='a@example.com', display_name=''),
         Address(addr_spec='b@example.com', display_name='Bob')]
    """
    addresses = []
    for fragment, offset in split_addresses(text):
        addresses.append(_parse_fragment(fragment, text, offset))
    return addresses


def parse_address(text: str) -> Address:
    """
    Parse exactly one address.

    Raises:
        AddressParseError: If text is empty, invalid, or holds more than one.
    """
    fragments = split_addresses(text)
    if not fragments:
        raise AddressParseError("Empty address", text, 0)
    if len(fragments) > 1:
        raise AddressParseError("Illegal address list", text, fragments[1][1])
    fragment, offset = fragments[0]
    return _parse_fragment(fragment, text, offset)


def offending_fragment(ref: str, pos: int) -> str:
    """
    Return the comma-delimited piece of ref that contains pos.

    >>> offending_fragment("a@b.com,bad,c@d.com", 8)
    'bad'
    """
    if "," not in ref:
        return ref
    pos = max(0, min(pos, len(ref)))
    start = ref.rfind(",", 0, pos) + 1
    end = ref.find(",", pos)
    if end == -1:
        end = len(ref)
    return ref[start:end].strip()


def _parse_fragment(fragment: str, ref: str, offset: int) -> Address:
    if fragment.count('"') % 2:
        raise AddressParseError("Missing '\"'", ref, offset)

    display_name, addr_spec = parseaddr(fragment)
    if not addr_spec or not ADDR_SPEC_PATTERN.match(addr_spec):
        raise AddressParseError("Invalid address", ref, offset)

    # parseaddr quietly drops trailing junk after <...>
    if "<" in fragment and not fragment.rstrip().endswith(">"):
        raise AddressParseError("Unexpected text after address", ref, offset)

    return Address(addr_spec=addr_spec, display_name=display_name)
