"""Answer scoring: accent-insensitive edit distance against a margin."""
import unicodedata
from typing import List


def strip_accents(text: str) -> str:
    """Drop combining marks after canonical decomposition."""
    return "".join(ch for ch in unicodedata.normalize("NFD", text) if unicodedata.category(ch) != "Mn")


def normalize(text: str) -> str:
    """Accent-stripped, case-folded form used for comparison."""
    if not isinstance(text, str):
        return ""
    return strip_accents(text).casefold()


def levenshtein(a: str, b: str) -> int:
    """Classic edit distance with unit insert, delete and substitute costs."""
    m, n = len(a), len(b)
    dp: List[List[int]] = [[0] * (n + 1) for _ in range(m + 1)]
    for i in range(m + 1):
        dp[i][0] = i
    for j in range(n + 1):
        dp[0][j] = j
    for i in range(1, m + 1):
        for j in range(1, n + 1):
            cost = 0 if a[i - 1] == b[j - 1] else 1
            dp[i][j] = min(dp[i - 1][j] + 1, dp[i][j - 1] + 1, dp[i - 1][j - 1] + cost)
    return dp[m][n]


def distance(user_input: str, expected: str) -> int:
    """Edit distance between the normalized forms of both strings."""
    return levenshtein(normalize(user_input), normalize(expected))


def score(user_input: str, expected: str, margin: int) -> bool:
    """Return True if the answer is within `margin` edits of the expected one."""
    if margin < 0:
        raise ValueError(f"Margin must be non-negative, got {margin}")
    return distance(user_input, expected) <= margin
