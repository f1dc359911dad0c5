"""
Retrieval module for embeddings and similarity search.

Provides the per-user embedding store used to ground answers in prior
interview context.
"""

from cv_voice_assistant.retrieval.vector_store import EmbeddingStore, VectorStoreBase, cosine_similarity

__all__ = ["EmbeddingStore", "VectorStoreBase", "cosine_similarity"]
