# =============================================================================
# Field Container Tests
# =============================================================================

from tagmailer.core import AddressAccumulator, HeaderTable, Overridable


class TestAddressAccumulator:
    def test_empty_field_has_empty_value(self):
        assert AddressAccumulator().current_value() == ""

    def test_base_is_effective_without_appends(self):
        field = AddressAccumulator(base="a@example.com")
        assert field.current_value() == "a@example.com"

    def test_appends_are_comma_joined_after_base(self):
        field = AddressAccumulator(base="a@example.com")
        field.begin()
        field.append("b@example.com")
        field.append("c@example.com")
        assert field.current_value() == "a@example.com,b@example.com,c@example.com"

    def test_reset_discards_prior_appends(self):
        field = AddressAccumulator(base="a@example.com")
        field.begin()
        for address in ("b@example.com", "c@example.com", "d@example.com"):
            field.append(address)
        field.reset("only@example.com")
        assert field.current_value() == "only@example.com"

    def test_begin_drops_previous_scope(self):
        field = AddressAccumulator(base="a@example.com")
        field.begin()
        field.append("b@example.com")
        field.begin()
        assert field.current_value() == "a@example.com"

    def test_no_validation(self):
        field = AddressAccumulator()
        field.append("not an address")
        assert field.current_value() == "not an address"
        assert field


class TestOverridable:
    def test_base_without_override(self):
        assert Overridable(base="Hello").value == "Hello"

    def test_last_reset_wins(self):
        field = Overridable(base="Hello")
        field.reset("First")
        field.reset("Second")
        assert field.value == "Second"

    def test_base_change_after_reset_is_ignored(self):
        field = Overridable(base="Hello")
        field.reset("Override")
        field.base = "Changed"
        assert field.value == "Override"

    def test_clear_restores_base(self):
        field = Overridable(base="Hello")
        field.reset("Override")
        field.clear()
        assert field.value == "Hello"


class TestHeaderTable:
    def test_order_and_duplicates_kept(self):
        headers = HeaderTable()
        headers.add("X-Tag", "one")
        headers.add("X-Other", "two")
        headers.add("X-Tag", "three")
        assert list(headers) == [("X-Tag", "one"), ("X-Other", "two"), ("X-Tag", "three")]
        assert len(headers) == 3

    def test_clear(self):
        headers = HeaderTable()
        headers.add("X-Tag", "one")
        headers.clear()
        assert len(headers) == 0
