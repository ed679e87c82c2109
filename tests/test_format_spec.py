"""
Tests for braceweave.format_spec

Test Coverage:
- parse_format_spec(): accepted grammar and per-dialect type flags
- FormatSpecError reasons and offsets
"""
import pytest

from braceweave.dialect import PYTHON, RUST
from braceweave.errors import FormatSpecError
from braceweave.format_spec import FormatSpec, parse_format_spec


class TestValidSpecs:
    def test_parse_when_none_then_default_representation(self):
        """No spec means the default display representation."""
        assert parse_format_spec(None, RUST) is None

    def test_parse_when_empty_then_plain_spec(self):
        """An empty spec is valid."""
        assert parse_format_spec("", RUST) == FormatSpec(raw="")

    def test_parse_when_zero_width_then_zero_flag_and_width(self):
        """`03` is zero-pad with width 3."""
        spec = parse_format_spec("03", RUST)

        assert spec.zero is True
        assert spec.width == 3
        assert spec.type_flag == ""

    def test_parse_when_fill_align_precision_then_all_fields(self):
        """Fill, alignment, width and precision are parsed in order."""
        spec = parse_format_spec("*^10.2", RUST)

        assert (spec.fill, spec.align, spec.width, spec.precision) == ("*", "^", 10, 2)

    def test_parse_when_all_flags_then_all_fields(self):
        """Sign, alternate and zero flags combine with a type."""
        spec = parse_format_spec("+#010x", RUST)

        assert spec == FormatSpec(
            raw="+#010x", sign="+", alternate=True, zero=True, width=10, type_flag="x"
        )

    def test_parse_when_debug_then_is_debug(self):
        """`?` selects the debug representation."""
        spec = parse_format_spec("?", RUST)

        assert spec.is_debug is True
        assert spec.is_pretty is False

    def test_parse_when_alternate_debug_then_is_pretty(self):
        """`#?` selects pretty debug."""
        spec = parse_format_spec("#?", RUST)

        assert spec.is_pretty is True

    def test_parse_when_hex_debug_then_rust_only(self):
        """`x?` is a Rust type flag."""
        assert parse_format_spec("x?", RUST).is_debug is True
        with pytest.raises(FormatSpecError):
            parse_format_spec("x?", PYTHON)

    def test_to_dict_when_parsed_then_type_key(self):
        """to_dict exposes the type flag under `type`."""
        data = parse_format_spec(">8", PYTHON).to_dict()

        assert data["align"] == ">"
        assert data["width"] == 8
        assert data["type"] == ""


class TestRejectedSpecs:
    @pytest.mark.parametrize(
        "text, reason",
        [
            ("++5", "duplicate sign flag '+'"),
            ("##x", "duplicate alternate-form flag '#'"),
            ("005", "duplicate zero-pad flag '0'"),
            ("<05", "zero-pad flag conflicts with explicit alignment"),
            (".x", "precision must be an unsigned integer after '.'"),
            ("5.2.1", "duplicate precision"),
            ("abc", "width must be an unsigned integer, got 'abc'"),
            ("z", "unknown type flag 'z'"),
            ("1$", "width and precision must be numeric literals, got '$'"),
            ("5+", "sign flag '+' must precede width and precision"),
            ("5.2<", "alignment '<' must come first"),
            ("{<5", "fill character '{' cannot be a brace"),
        ],
    )
    def test_parse_when_malformed_then_specific_reason(self, text, reason):
        """Each malformed spec names what is wrong."""
        with pytest.raises(FormatSpecError) as exc_info:
            parse_format_spec(text, RUST)

        assert exc_info.value.reason == reason
        assert str(exc_info.value) == f"E_FORMAT_SPEC_INVALID: invalid format specifier: {reason}"

    def test_parse_when_pointer_flag_on_python_then_unknown(self):
        """Type flags come from the dialect."""
        with pytest.raises(FormatSpecError) as exc_info:
            parse_format_spec("p", PYTHON)

        assert exc_info.value.reason == "unknown type flag 'p'"

    def test_parse_when_sign_with_debug_on_python_then_rejected(self):
        """repr output has no sign to apply, so python refuses `+?`."""
        with pytest.raises(FormatSpecError) as exc_info:
            parse_format_spec("+?", PYTHON, offset=4)

        assert exc_info.value.reason == "sign flag '+' cannot be combined with the debug type flag"
        assert exc_info.value.offset == 4

    def test_parse_when_sign_with_debug_on_rust_then_valid(self):
        """Rust applies the sign inside Debug output."""
        spec = parse_format_spec("+?", RUST)

        assert spec.sign == "+"
        assert spec.is_debug

    def test_parse_when_offset_given_then_error_offset_is_absolute(self):
        """Error offsets add the spec's own position."""
        with pytest.raises(FormatSpecError) as exc_info:
            parse_format_spec("5z", RUST, offset=10)

        assert exc_info.value.offset == 11
