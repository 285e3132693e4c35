"""Levenshtein edit distance."""


def levenshtein_distance(a: str, b: str) -> int:
    """Return the minimum number of single-character edits turning a into b.

    Insertions, deletions and substitutions cost 1 each. Only two rows of the
    dynamic-programming table are kept.
    """
    if not a:
        return len(b)
    if not b:
        return len(a)
    # Iterate over the longer string so the rows stay short
    if len(a) < len(b):
        a, b = b, a
    prev = list(range(len(b) + 1))
    for i, ca in enumerate(a):
        curr = [i + 1]
        for j, cb in enumerate(b):
            cost = 0 if ca == cb else 1
            curr.append(min(curr[j] + 1, prev[j + 1] + 1, prev[j] + cost))
        prev = curr
    return prev[-1]
