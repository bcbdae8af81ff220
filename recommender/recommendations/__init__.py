"""
Store and mission recommendation engine.

Responsibilities:
- Normalise user and store hashtags into comparable tag sets.
- Score every candidate on tag overlap (k1) and engagement (k2).
- Narrow the candidates to a small, deterministically ordered window.
- Rerank the window by embedding similarity, keeping the window order
  whenever the embedding stage cannot be trusted.
- Project the final order into API responses.
"""
