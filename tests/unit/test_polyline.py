"""Unit tests for the polyline codec."""

import pytest

from tripsync.app.engine.polyline import PolylineDecodeError, decode, encode

REFERENCE_POINTS = [(38.5, -120.2), (40.7, -120.95), (43.252, -126.453)]
REFERENCE_ENCODED = "_p~iF~ps|U_ulLnnqC_mqNvxq`@"


class TestEncode:
    """Test encode()."""

    def test_reference_vector(self) -> None:
        assert encode(REFERENCE_POINTS) == REFERENCE_ENCODED

    def test_empty_input_encodes_to_empty_string(self) -> None:
        assert encode([]) == ""

    def test_rounds_half_away_from_zero(self) -> None:
        # Banker's rounding would give 0 and 2
        assert encode([(0.5, 2.5)], precision=0) == "AE"
        assert encode([(-0.5, -2.5)], precision=0) == "@D"

    def test_accepts_lists_as_points(self) -> None:
        assert encode([[38.5, -120.2]]) == "_p~iF~ps|U"


class TestDecode:
    """Test decode()."""

    def test_reference_vector(self) -> None:
        assert decode(REFERENCE_ENCODED) == pytest.approx(REFERENCE_POINTS)

    def test_empty_string_decodes_to_no_points(self) -> None:
        assert decode("") == []

    def test_encoded_output_decodes_to_rounded_input(self) -> None:
        points = [(-33.86785, 151.20732), (-32.92669, 151.77892)]
        assert decode(encode(points)) == pytest.approx(points)

    def test_truncated_value_raises(self) -> None:
        with pytest.raises(PolylineDecodeError, match="incomplete"):
            decode("abc")

    def test_latitude_without_longitude_raises(self) -> None:
        with pytest.raises(PolylineDecodeError, match="latitude without longitude"):
            decode("_p~iF")

    def test_character_outside_alphabet_raises(self) -> None:
        with pytest.raises(PolylineDecodeError, match="Invalid character"):
            decode("_p~iF ~ps|U")

    def test_decode_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            decode("def")
