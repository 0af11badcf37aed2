"""Tests for the EEPROM address cursor."""

import pytest

from buspirate_eeprom_mcp.models.cursor import AddressCursor


def test_advance_counts_bytes():
    cursor = AddressCursor()
    cursor.advance(8)
    cursor.advance(1)
    assert cursor.position == 9


def test_cursor_may_reach_end_of_block():
    cursor = AddressCursor(250)
    assert cursor.advance(6) == 256
    assert cursor.remaining == 0


def test_cursor_never_passes_end_of_block():
    cursor = AddressCursor(250)
    with pytest.raises(ValueError):
        cursor.advance(7)
    assert cursor.position == 250


def test_cursor_only_moves_forward():
    with pytest.raises(ValueError):
        AddressCursor(4).advance(-1)


def test_start_out_of_range():
    with pytest.raises(ValueError):
        AddressCursor(257)
    with pytest.raises(ValueError):
        AddressCursor(-1)


@pytest.mark.parametrize("position,left", [(0, 16), (4, 12), (12, 4), (15, 1), (16, 16)])
def test_page_remaining(position, left):
    assert AddressCursor(position).page_remaining(16) == left


def test_require():
    cursor = AddressCursor(200)
    cursor.require(56)
    with pytest.raises(ValueError):
        cursor.require(57)
