"""Token-overlap similarity shared by interview-time and read-time dedup."""


def tokenize(text: str) -> set[str]:
    return set(text.lower().split())


def similarity(a: str, b: str) -> float:
    """Jaccard index over lowercase whitespace tokens.

    Symmetric; 0.0 when the union is empty.
    """
    tokens_a = tokenize(a)
    tokens_b = tokenize(b)
    union = tokens_a | tokens_b
    if not union:
        return 0.0
    return len(tokens_a & tokens_b) / len(union)
