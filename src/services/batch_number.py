"""
Batch number generation.

Format: BATCH-<YYYYMMDD>-<HHMMSS>-<dish id>, e.g. BATCH-20251228-205740-3.

Numbers sort chronologically per dish. Two sessions for the same dish
started in the same second produce the same number; the production
gateway resolves that at commit time with ensure_unique_batch_number().
"""

from datetime import datetime
from typing import Callable

from src.utils.constants import BATCH_DATE_FORMAT, BATCH_NUMBER_PREFIX, BATCH_TIME_FORMAT


def generate_batch_number(dish_id: int, now: datetime) -> str:
    """
    Build a batch number from a dish ID and wall-clock time.

    Args:
        dish_id: Dish being produced
        now: Time the recipe session took its first ingredient

    Returns:
        Batch number string
    """
    date_code = now.strftime(BATCH_DATE_FORMAT)
    time_code = now.strftime(BATCH_TIME_FORMAT)
    return f"{BATCH_NUMBER_PREFIX}-{date_code}-{time_code}-{dish_id}"


def ensure_unique_batch_number(batch_number: str, exists: Callable[[str], bool]) -> str:
    """
    Return batch_number, or the first free "-2", "-3", ... variant of it.

    Args:
        batch_number: Candidate from generate_batch_number()
        exists: Predicate telling whether a batch number is already taken

    Returns:
        A batch number for which exists() is False
    """
    if not exists(batch_number):
        return batch_number
    sequence = 2
    while exists(f"{batch_number}-{sequence}"):
        sequence += 1
    return f"{batch_number}-{sequence}"
