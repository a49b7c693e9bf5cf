"""Tests for local keyword extraction."""

from ideasystem.utils.keywords import extract_keywords, summarize_locally, tokenize


def test_keywords_ranked_by_frequency():
    """Test that more frequent words come first, ties by first occurrence."""
    assert extract_keywords("buy buy milk milk milk tomorrow") == ["milk", "buy", "tomorrow"]


def test_keywords_skip_stopwords_and_short_words():
    keywords = extract_keywords("I need to get the car to the garage at 10")
    assert keywords == ["car", "garage"]


def test_keywords_limit():
    text = "alpha beta gamma delta epsilon zeta"
    assert extract_keywords(text, limit=2) == ["alpha", "beta"]
    assert extract_keywords(text, limit=0) == []


def test_tokenize_lowercases_and_drops_numbers():
    assert tokenize("Call Bob at 5 on Friday!") == ["call", "bob", "at", "on", "friday"]


def test_summarize_locally():
    assert summarize_locally("  short   text ") == "short text"
    summary = summarize_locally("word " * 50, max_length=20)
    assert summary.endswith("...")
    assert len(summary) == 23
