"""Tests for batch number generation and collision handling."""

from datetime import datetime

from src.services.batch_number import ensure_unique_batch_number, generate_batch_number


def test_generate_batch_number_format():
    now = datetime(2025, 12, 28, 20, 57, 40)
    assert generate_batch_number(3, now) == "BATCH-20251228-205740-3"


def test_generate_batch_number_zero_pads():
    now = datetime(2026, 1, 2, 3, 4, 5)
    assert generate_batch_number(12, now) == "BATCH-20260102-030405-12"


def test_batch_numbers_sort_chronologically_per_dish():
    earlier = generate_batch_number(3, datetime(2025, 12, 28, 9, 0, 0))
    later = generate_batch_number(3, datetime(2025, 12, 28, 14, 30, 0))
    assert sorted([later, earlier]) == [earlier, later]


def test_unique_batch_number_unchanged_when_free():
    assert ensure_unique_batch_number("BATCH-20251228-205740-3", lambda n: False) == (
        "BATCH-20251228-205740-3"
    )


def test_unique_batch_number_appends_sequence():
    taken = {"BATCH-20251228-205740-3", "BATCH-20251228-205740-3-2"}
    result = ensure_unique_batch_number("BATCH-20251228-205740-3", taken.__contains__)
    assert result == "BATCH-20251228-205740-3-3"
