# tests/test_value_capture.py
"""
Tests for semexplore/utils/value_capture.py - Value normalisation and coercion.
"""
import math
from datetime import datetime

import numpy as np
import pandas as pd

from semexplore.core import MappingTransform
from semexplore.utils.value_capture import (
    apply_transform,
    is_blank,
    normalize_value,
    parse_date,
    parses_as_number,
    strict_equals,
    to_number,
    to_text,
    type_csv_cell,
    value_kind,
)


class TestNormalizeValue:
    def test_na_values_become_none(self):
        """NaN, pd.NA and NaT normalise to None."""
        assert normalize_value(np.nan) is None
        assert normalize_value(pd.NA) is None
        assert normalize_value(pd.NaT) is None
        assert normalize_value(None) is None

    def test_numpy_scalars_become_native(self):
        """numpy scalars are unwrapped to Python types."""
        assert type(normalize_value(np.int64(3))) is int
        assert type(normalize_value(np.float32(1.5))) is float
        assert normalize_value(np.bool_(True)) is True

    def test_timestamps_become_iso_strings(self):
        """Timestamps are stored as ISO text."""
        assert normalize_value(pd.Timestamp("2024-01-02")) == "2024-01-02T00:00:00"

    def test_other_objects_are_stringified(self):
        """Unknown objects fall back to str()."""
        assert normalize_value([1, 2]) == "[1, 2]"


class TestTypeCSVCell:
    def test_kinds(self):
        """Empty is null, true/false are booleans, clean numerals are numbers."""
        assert type_csv_cell("") is None
        assert type_csv_cell("TRUE") is True
        assert type_csv_cell("false") is False
        assert type_csv_cell("7") == 7 and type(type_csv_cell("7")) is int
        assert type_csv_cell("-2.5") == -2.5
        assert type_csv_cell("1e3") == 1000.0

    def test_text_kept_verbatim(self):
        for text in ("NA", "null", "0x10", " padded ", "12abc"):
            assert type_csv_cell(text) == text


class TestNumberCoercion:
    def test_none_uses_default(self):
        """None coerces to the given default."""
        assert to_number(None) == 0.0
        assert math.isnan(to_number(None, default=math.nan))

    def test_numeric_strings(self):
        """Clean numeric literals parse; whitespace is ignored."""
        assert to_number(" 42 ") == 42.0
        assert to_number("1e3") == 1000.0
        assert to_number("0x10") == 16.0
        assert to_number("") == 0.0

    def test_garbage_is_nan(self):
        """Non-numeric text coerces to NaN."""
        assert math.isnan(to_number("abc"))
        assert math.isnan(to_number("12abc"))

    def test_booleans(self):
        """Booleans coerce to 1 and 0."""
        assert to_number(True) == 1.0
        assert to_number(False) == 0.0

    def test_parses_as_number(self):
        """Only real numbers and numeric literals count as numeric."""
        assert parses_as_number(3)
        assert parses_as_number("3.5")
        assert not parses_as_number("")
        assert not parses_as_number(True)
        assert not parses_as_number(None)


class TestTextCoercion:
    def test_integral_floats_drop_fraction(self):
        """1.0 renders as '1', like a browser would."""
        assert to_text(1.0) == "1"
        assert to_text(2.5) == "2.5"

    def test_special_values(self):
        """None, booleans and NaN have fixed text forms."""
        assert to_text(None) == ""
        assert to_text(True) == "true"
        assert to_text(math.nan) == "NaN"

    def test_apply_transform(self):
        """Mapping transforms change the case or trim."""
        assert apply_transform(" Ab ", MappingTransform.UPPERCASE) == " AB "
        assert apply_transform(" Ab ", MappingTransform.LOWERCASE) == " ab "
        assert apply_transform(" Ab ", MappingTransform.TRIM) == "Ab"
        assert apply_transform(" Ab ", MappingTransform.NONE) == " Ab "

    def test_is_blank(self):
        """None and '' are blank; 0 and False are not."""
        assert is_blank(None)
        assert is_blank("")
        assert not is_blank(0)
        assert not is_blank(False)


class TestStrictEquals:
    def test_kinds_must_match(self):
        """Booleans, numbers and strings never compare equal across kinds."""
        assert not strict_equals(1, "1")
        assert not strict_equals(True, 1)
        assert value_kind(True) == "boolean"

    def test_int_and_float_compare_numerically(self):
        """1 and 1.0 are the same number."""
        assert strict_equals(1, 1.0)

    def test_nulls_and_nan(self):
        """None equals None; NaN equals nothing."""
        assert strict_equals(None, None)
        assert not strict_equals(None, 0)
        assert not strict_equals(math.nan, math.nan)


class TestParseDate:
    def test_iso_dates(self):
        """ISO dates parse to naive datetimes."""
        assert parse_date("2024-03-01") == datetime(2024, 3, 1)

    def test_timezone_is_converted_to_utc(self):
        """Aware timestamps are converted to naive UTC."""
        assert parse_date("2024-03-01T12:00:00+02:00") == datetime(2024, 3, 1, 10, 0)

    def test_unparsable_is_none(self):
        """Garbage and empty cells do not parse."""
        assert parse_date("not a date") is None
        assert parse_date("") is None
        assert parse_date(None) is None
