"""Unit tests for coursetutor.fallbacks."""

from __future__ import annotations

from coursetutor.fallbacks import (
    NO_KEY_POINTS,
    answer_fallback,
    clarification_fallback,
    extract_key_points,
    notes_fallback,
    summary_fallback,
)

CONTENT = (
    "Cells are the basic structural unit of all living organisms. "
    "The nucleus stores genetic information as DNA. "
    "Short one. "
    "Mitochondria produce most of the chemical energy a cell needs. "
    "Ribosomes assemble proteins from amino acid chains."
)


class TestExtractKeyPoints:
    def test_first_three_long_sentences_numbered(self) -> None:
        assert extract_key_points(CONTENT) == (
            "1. Cells are the basic structural unit of all living organisms.\n"
            "2. The nucleus stores genetic information as DNA.\n"
            "3. Mitochondria produce most of the chemical energy a cell needs."
        )

    def test_short_sentences_skipped(self) -> None:
        assert "Short one" not in extract_key_points(CONTENT)

    def test_no_qualifying_sentences(self) -> None:
        assert extract_key_points("Too short. Also short.") == ""
        assert extract_key_points("") == ""

    def test_exactly_twenty_characters_is_skipped(self) -> None:
        assert extract_key_points("a" * 20 + ".") == ""
        assert extract_key_points("a" * 21 + ".") == "1. " + "a" * 21 + "."


class TestAnswerFallback:
    def test_deterministic(self) -> None:
        first = answer_fallback("What is a cell?", "Cell Biology", CONTENT)
        second = answer_fallback("What is a cell?", "Cell Biology", CONTENT)
        assert first == second

    def test_echoes_question_and_title(self) -> None:
        text = answer_fallback("What is a cell?", "Cell Biology", CONTENT)
        assert '**Your Question:** "What is a cell?"' in text
        assert '"Cell Biology"' in text
        assert "1. Cells are the basic structural unit" in text

    def test_placeholder_when_no_key_points(self) -> None:
        text = answer_fallback("Why?", "Cell Biology", "Tiny.")
        assert NO_KEY_POINTS in text


class TestNotesFallback:
    def test_structure(self) -> None:
        text = notes_fallback("Cell Biology", CONTENT)
        assert text.startswith('Study Notes for "Cell Biology"')
        assert "## Key Points Identified:" in text
        assert "## Study Framework:" in text
        assert "## Next Steps:" in text
        assert "2. The nucleus stores genetic information as DNA." in text

    def test_placeholder_when_no_key_points(self) -> None:
        assert NO_KEY_POINTS in notes_fallback("Cell Biology", "")


class TestClarificationFallback:
    def test_mentions_request_and_title(self) -> None:
        text = clarification_fallback("osmosis", "Cell Biology")
        assert '"osmosis"' in text
        assert '"Cell Biology"' in text


class TestSummaryFallback:
    def test_shape(self) -> None:
        result = summary_fallback("Cell Biology")
        assert result.fallback is True
        assert result.summary
        assert len(result.key_points) == 4
        assert len(result.concepts) == 4

    def test_title_lowercased_into_summary(self) -> None:
        result = summary_fallback("Cell Biology")
        assert "cell biology" in result.summary

    def test_deterministic(self) -> None:
        assert summary_fallback("Cell Biology") == summary_fallback("Cell Biology")
