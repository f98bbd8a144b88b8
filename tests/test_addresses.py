# =============================================================================
# Address Parsing Tests
# =============================================================================

import pytest

from tagmailer.smtp import (
    Address,
    AddressParseError,
    offending_fragment,
    parse_address,
    parse_addresses,
)


class TestParseAddresses:
    def test_simple_list(self):
        assert [a.addr_spec for a in parse_addresses("a@b.com, c@d.com")] == ["a@b.com", "c@d.com"]

    def test_display_names_with_commas(self):
        addresses = parse_addresses('"Smith, Bob" <bob@example.com>, Carol <carol@example.com>')
        assert addresses == [
            Address("bob@example.com", "Smith, Bob"),
            Address("carol@example.com", "Carol"),
        ]

    def test_blank_fragments_ignored(self):
        assert len(parse_addresses("a@b.com,, c@d.com,")) == 2

    def test_error_points_at_bad_fragment(self):
        text = "a@b.com,bad,c@d.com"
        with pytest.raises(AddressParseError) as info:
            parse_addresses(text)
        assert info.value.ref == text
        assert info.value.pos == 8
        assert offending_fragment(info.value.ref, info.value.pos) == "bad"

    @pytest.mark.parametrize("text", [
        "plainword",
        "a@",
        "@example.com",
        "a@b..com",
        "Bob <bob@example.com> trailing",
        '"Unclosed <a@example.com>',
    ])
    def test_invalid(self, text):
        with pytest.raises(AddressParseError):
            parse_addresses(text)


class TestParseAddress:
    def test_single(self):
        assert parse_address(" Alice <a@example.com> ") == Address("a@example.com", "Alice")

    def test_rejects_list(self):
        with pytest.raises(AddressParseError):
            parse_address("a@example.com, b@example.com")

    def test_rejects_empty(self):
        with pytest.raises(AddressParseError):
            parse_address("")


class TestOffendingFragment:
    def test_single_address_returns_whole_string(self):
        assert offending_fragment("bad", 0) == "bad"

    def test_last_fragment(self):
        assert offending_fragment("a@b.com, oops", 9) == "oops"


def test_address_str_quotes_display_name():
    assert str(Address("bob@example.com", "Smith, Bob")) == '"Smith, Bob" <bob@example.com>'
