"""
Embeddings layer for semantic reranking.

Responsibilities:
- Load a lightweight sentence-transformer model, or call an OpenAI-compatible
  embeddings endpoint.
- Embed a whole request batch in one bounded call.
- Report provider failures as values instead of exceptions.
- Provide cosine similarity for candidate reranking.
"""
