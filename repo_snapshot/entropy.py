"""Shannon entropy scoring for secret-likelihood heuristics."""

import math
from collections import Counter
from typing import Optional


def shannon_entropy(token: Optional[str]) -> float:
    """Return the Shannon entropy of ``token`` in bits per character.

    H = -sum(p(c) * log2(p(c))) over the distinct characters of the token,
    where p(c) is the relative frequency of c. One repeated character scores
    0.0; k equally frequent characters score log2(k). Empty input scores 0.0.
    """
    if not token:
        return 0.0

    length = len(token)
    entropy = 0.0
    for count in Counter(token).values():
        p = count / length
        entropy -= p * math.log2(p)

    return max(entropy, 0.0)
