"""
Chunker Tests

Covers word-window chunking, window-size selection and chunk capping.
"""

import random

import pytest

from docqa_server.core.errors import ChunkingError, ValidationError
from docqa_server.retrieval.chunker import (
    DEFAULT_WINDOW,
    LARGE_DOCUMENT_WINDOW,
    cap_chunks,
    choose_chunk_size,
    chunk_text,
)


def _words(n, prefix="w"):
    return [f"{prefix}{i}" for i in range(n)]


class TestChunkText:
    def test_five_thousand_words_in_windows_of_300(self):
        text = " ".join(_words(5000))

        chunks = chunk_text(text, 300, document_id="doc")

        assert len(chunks) == 17
        assert all(len(c.text.split()) == 300 for c in chunks[:16])
        last = chunks[16].text.split()
        assert len(last) == 200
        assert last[-1] == "w4999"

    def test_chunk_metadata(self):
        chunks = chunk_text("a b c d e", 2, document_id="https://x/doc.pdf")

        assert [c.index for c in chunks] == [0, 1, 2]
        assert {c.total_chunks for c in chunks} == {3}
        assert {c.document_id for c in chunks} == {"https://x/doc.pdf"}
        assert [c.text for c in chunks] == ["a b", "c d", "e"]

    @pytest.mark.parametrize("word_count,window", [(1, 1), (7, 3), (300, 300), (301, 300), (1000, 17)])
    def test_rejoining_chunks_reproduces_words(self, word_count, window):
        rng = random.Random(word_count * 31 + window)
        words = [f"t{rng.randint(0, 50)}" for _ in range(word_count)]
        # Irregular whitespace must not change the word sequence.
        text = "  ".join(words[: word_count // 2]) + "\n\t" + " ".join(words[word_count // 2 :])

        chunks = chunk_text(text, window)

        rejoined = [w for c in chunks for w in c.text.split()]
        assert rejoined == words
        assert all(len(c.text.split()) <= window for c in chunks)

    @pytest.mark.parametrize("window", [0, -5, 2.5, None])
    def test_rejects_non_positive_window(self, window):
        with pytest.raises(ChunkingError) as exc:
            chunk_text("some words here", window)
        assert exc.value.message == "maxWords must be a positive number"

    @pytest.mark.parametrize("text", ["", "   \n\t "])
    def test_rejects_text_without_words(self, text):
        with pytest.raises(ChunkingError):
            chunk_text(text, 10)

    def test_chunking_error_is_a_validation_error(self):
        with pytest.raises(ValidationError):
            chunk_text("", 10)


class TestChooseChunkSize:
    def test_default_window(self):
        assert choose_chunk_size(500_000) == DEFAULT_WINDOW == 300

    def test_large_documents_get_smaller_windows(self):
        assert choose_chunk_size(500_001) == LARGE_DOCUMENT_WINDOW == 200

    def test_threshold_override(self):
        assert choose_chunk_size(11, large_document_chars=10) == 200


class TestCapChunks:
    def test_under_limit_is_unchanged(self):
        chunks = chunk_text(" ".join(_words(10)), 5)

        kept, truncated = cap_chunks(chunks, max_chunks=5)

        assert kept == chunks
        assert truncated is False

    def test_over_limit_keeps_leading_chunks(self):
        chunks = chunk_text(" ".join(_words(10)), 1)

        kept, truncated = cap_chunks(chunks, max_chunks=3)

        assert truncated is True
        assert [c.index for c in kept] == [0, 1, 2]
        assert all(c.total_chunks == 3 for c in kept)
