"""Tests for room code helpers."""

from __future__ import annotations

import pytest

from sidera_sync.core.config import RoomSettings
from sidera_sync.core.exceptions import ValidationError
from sidera_sync.session.codes import (
    BASE36_ALPHABET,
    generate_room_code,
    normalize_room_code,
    validate_room_code,
)


class TestGenerateRoomCode:
    def test_default_shape(self) -> None:
        code = generate_room_code()

        prefix, suffix = code.split("-")
        assert prefix == "SIDERA"
        assert len(suffix) == 4
        assert set(suffix) <= set(BASE36_ALPHABET)

    def test_custom_settings(self) -> None:
        code = generate_room_code(RoomSettings(code_prefix="orbit", code_length=6))

        assert code.startswith("ORBIT-")
        assert len(code) == len("ORBIT-") + 6


class TestValidateRoomCode:
    """Tests for user-typed code validation."""

    def test_normalizes_case_and_whitespace(self) -> None:
        assert validate_room_code("  sidera-a1b2 ") == "SIDERA-A1B2"

    @pytest.mark.parametrize("code", [None, "", "   "])
    def test_missing_code(self, code: str | None) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_room_code(code)

        assert exc_info.value.details["field_name"] == "code"

    @pytest.mark.parametrize("code", ["SIDERA-A1", "OTHER-A1B2", "SIDERA_A1B2", "SIDERA-A1B2C"])
    def test_malformed_code(self, code: str) -> None:
        with pytest.raises(ValidationError):
            validate_room_code(code)

    def test_normalize_does_not_validate(self) -> None:
        assert normalize_room_code(" abc ") == "ABC"
