import random
import string
from typing import Optional

from hello_grpc.exceptions import InvalidArgument

ALPHABET = string.ascii_lowercase + string.ascii_uppercase + "1234567890"


def random_number_between(low: int, high: int, rng: Optional[random.Random] = None) -> int:
    """Uniform random integer in the inclusive range ``[low, high]``.

    Args:
        low: smallest value that may be returned.
        high: largest value that may be returned.
        rng: generator to draw from, the ``random`` module when omitted.

    Raises:
        InvalidArgument: if ``low`` is greater than ``high``.
    """
    if low > high:
        raise InvalidArgument(f"low ({low}) must not be greater than high ({high})")
    return (rng or random).randint(low, high)


def random_string(length: int, rng: Optional[random.Random] = None) -> str:
    """Random string of ``length`` characters drawn from ``ALPHABET``."""
    if length < 0:
        raise InvalidArgument(f"length must not be negative, got {length}")
    last = len(ALPHABET) - 1
    return "".join(ALPHABET[random_number_between(0, last, rng)] for _ in range(length))
