from __future__ import annotations


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance with unit-cost insertion, deletion and substitution."""
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    prev_row = list(range(len(b) + 1))
    for i, char_a in enumerate(a):
        curr_row = [i + 1]
        for j, char_b in enumerate(b):
            insertions = prev_row[j + 1] + 1
            deletions = curr_row[j] + 1
            substitutions = prev_row[j] + (char_a != char_b)
            curr_row.append(min(insertions, deletions, substitutions))
        prev_row = curr_row
    return prev_row[-1]


def similarity(a: str, b: str) -> float:
    """
    Normalized similarity in [0, 1]: 1 - edit_distance / max(len(a), len(b)).

    An empty operand never matches, so the result is 0.0 rather than a
    division by zero. No case folding or whitespace normalization is applied.
    """
    longest = max(len(a), len(b))
    if not a or not b:
        return 0.0
    return (longest - edit_distance(a, b)) / longest
