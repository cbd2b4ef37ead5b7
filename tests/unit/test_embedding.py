"""Unit tests for embedding providers and batched embedding."""

from unittest.mock import MagicMock, patch

import pytest

from indexqa.embedding.provider import EmbeddingProvider
from indexqa.embedding.sentence_transformer import SentenceTransformerEmbeddingProvider
from indexqa.exceptions import UpstreamError


class CountingEmbedder(EmbeddingProvider):

    def __init__(self, drop_last=False):
        self.calls = []
        self.drop_last = drop_last

    def embed(self, texts):
        self.calls.append(list(texts))
        vectors = [[float(len(t))] for t in texts]
        return vectors[:-1] if self.drop_last else vectors

    @property
    def dimension(self):
        return 1


class TestEmbedBatched:

    def test_preserves_order_across_batches(self):
        embedder = CountingEmbedder()
        results = embedder.embed_batched(["a", "bb", "ccc", "dddd", "eeeee"], batch_size=2)

        assert [r.vector for r in results] == [[1.0], [2.0], [3.0], [4.0], [5.0]]
        assert [len(c) for c in embedder.calls] == [2, 2, 1]

    def test_token_counts(self):
        results = CountingEmbedder().embed_batched(["x" * 9])
        assert results[0].token_count == 3

    def test_count_mismatch(self):
        with pytest.raises(UpstreamError):
            CountingEmbedder(drop_last=True).embed_batched(["a", "b"])

    def test_invalid_batch_size(self):
        with pytest.raises(ValueError):
            CountingEmbedder().embed_batched(["a"], batch_size=0)


class TestSentenceTransformerProvider:

    @patch("indexqa.embedding.sentence_transformer.SentenceTransformer")
    def test_query_prefix_applied_to_queries_only(self, mock_st):
        model = MagicMock()
        model.get_sentence_embedding_dimension.return_value = 384
        model.encode.side_effect = lambda texts, **kwargs: MagicMock(
            tolist=lambda: [[0.1] for _ in texts]
        )
        mock_st.return_value = model

        provider = SentenceTransformerEmbeddingProvider(
            "BAAI/bge-small-en-v1.5", query_prefix="query: "
        )
        provider.embed(["document text"])
        provider.embed_query("what rate?")

        assert provider.dimension == 384
        assert model.encode.call_args_list[0].args[0] == ["document text"]
        assert model.encode.call_args_list[1].args[0] == ["query: what rate?"]

    @patch("indexqa.embedding.sentence_transformer.SentenceTransformer")
    def test_falls_back_to_download(self, mock_st):
        model = MagicMock()
        model.get_sentence_embedding_dimension.return_value = 384
        mock_st.side_effect = [OSError("not cached"), model]

        provider = SentenceTransformerEmbeddingProvider()

        assert mock_st.call_count == 2
        assert provider.model_name == "all-MiniLM-L6-v2"

    @patch("indexqa.embedding.sentence_transformer.SentenceTransformer")
    def test_empty_input_rejected(self, mock_st):
        mock_st.return_value.get_sentence_embedding_dimension.return_value = 384
        with pytest.raises(ValueError):
            SentenceTransformerEmbeddingProvider().embed([])
