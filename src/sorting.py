import re
from functools import cmp_to_key
from typing import Any, Callable, Iterable, List, Sequence, Tuple, TypeVar

T = TypeVar('T')

# re.split with a capturing group alternates text and digit runs, always
# starting with a (possibly empty) text run.
_DIGIT_RUN = re.compile(r'(\d+)')


def natural_key(value: str) -> Tuple[Tuple[Any, ...], str]:
    """
    Build a sort key that orders digit runs by numeric value.

    Text runs compare case-insensitively. Two strings that are equal under
    that rule are ordered by their raw code points, so only identical strings
    produce identical keys.

    Args:
        value: The identifier to build a key for.

    Returns:
        A tuple usable with sorted() or direct comparison.
    """
    parts = _DIGIT_RUN.split(value)
    folded = tuple(
        int(part) if index % 2 else part.casefold()
        for index, part in enumerate(parts)
    )
    return folded, value


def natural_compare(a: str, b: str) -> int:
    """Return a negative, zero or positive number as a sorts before, with or after b."""
    key_a, key_b = natural_key(a), natural_key(b)
    if key_a < key_b:
        return -1
    if key_a > key_b:
        return 1
    return 0


def _compare_values(a: Any, b: Any) -> int:
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


def sort(
        items: Iterable[T],
        key_fn: Callable[[T], Sequence[Any]],
        tiebreak: Callable[[str, str], int] = natural_compare
) -> List[T]:
    """
    Stable multi-key sort.

    key_fn returns a tuple; every element but the last is compared with the
    usual ordering (booleans and numbers, negate a boolean to push matching
    items to the front), the last element is a string compared with tiebreak.
    Items with equal keys keep their input order.

    Args:
        items: The items to sort. Not modified.
        key_fn: Extracts the key tuple of an item.
        tiebreak: Comparator for the trailing string key.

    Returns:
        A new, sorted list.
    """
    def compare(a: Tuple[Any, ...], b: Tuple[Any, ...]) -> int:
        *head_a, last_a = a
        *head_b, last_b = b
        for value_a, value_b in zip(head_a, head_b):
            result = _compare_values(value_a, value_b)
            if result:
                return result
        return tiebreak(last_a, last_b)

    keyed = [(tuple(key_fn(item)), item) for item in items]
    compare_key = cmp_to_key(compare)
    keyed.sort(key=lambda pair: compare_key(pair[0]))
    return [item for _, item in keyed]
