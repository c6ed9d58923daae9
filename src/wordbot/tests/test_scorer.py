"""Tests for answer scoring."""
import pytest
from faker import Faker

from wordbot.services.scorer import distance, levenshtein, normalize, score

fake = Faker()


def test_levenshtein_known_distances() -> None:
    assert levenshtein("kitten", "sitting") == 3
    assert levenshtein("cat", "cta") == 2
    assert levenshtein("cat", "cats") == 1
    assert levenshtein("", "abc") == 3
    assert levenshtein("abc", "") == 3
    assert levenshtein("", "") == 0


def test_normalize_strips_accents_and_folds_case() -> None:
    assert normalize("Café") == "cafe"
    assert normalize("ÉCOLE") == "ecole"
    assert normalize("Straße") == "strasse"
    assert normalize("niño") == "nino"


def test_identity_is_exact() -> None:
    for _ in range(50):
        text = fake.word()
        assert score(text, text, 0)


def test_score_is_symmetric() -> None:
    for _ in range(50):
        a, b = fake.word(), fake.word()
        for margin in range(4):
            assert score(a, b, margin) == score(b, a, margin)


def test_accent_insensitive() -> None:
    assert score("café", "cafe", 0)
    assert score("cafe", "café", 0)
    assert score("Über", "uber", 0)


def test_case_insensitive() -> None:
    assert score("Hello", "hello", 0)


def test_margin_bounds_the_distance() -> None:
    # one transposition is two edits
    assert distance("cta", "cat") == 2
    assert not score("cta", "cat", 1)
    assert score("cta", "cat", 2)
    assert score("ct", "cat", 1)
    assert not score("dog", "cat", 0)


def test_blank_answer_is_not_special_cased() -> None:
    assert distance("", "house") == 5
    assert not score("", "house", 4)
    assert score("", "house", 5)


def test_negative_margin_is_rejected() -> None:
    with pytest.raises(ValueError):
        score("a", "a", -1)
