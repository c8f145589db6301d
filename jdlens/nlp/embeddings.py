# jdlens/nlp/embeddings.py
from typing import Protocol

import numpy as np
from sentence_transformers import SentenceTransformer

from jdlens.core.config import settings

# ---------- Model cache ----------
_models: dict[str, SentenceTransformer] = {}

def get_model(name: str) -> SentenceTransformer:
    if name not in _models:
        _models[name] = SentenceTransformer(name)
    return _models[name]


class Embedder(Protocol):
    def embed(self, text: str) -> np.ndarray: ...


class SentenceEmbedder:
    """Sentence-transformers backed embedder; the model loads on first use."""

    def __init__(self, model_name: str | None = None):
        self.model_name = model_name or settings.EMBEDDING_MODEL

    def embed_texts(self, texts: list[str]) -> np.ndarray:
        """
        Returns np.float32 array of shape (N, D), L2-normalized.
        """
        M = get_model(self.model_name)
        X = M.encode(texts, normalize_embeddings=True)
        return np.asarray(X, dtype=np.float32)

    def embed(self, text: str) -> np.ndarray:
        return self.embed_texts([text])[0]


# ---------- Column helpers ----------
def to_blob(vec: np.ndarray) -> bytes:
    return np.asarray(vec, dtype=np.float32).tobytes()

def from_blob(blob: bytes) -> np.ndarray:
    return np.frombuffer(blob, dtype=np.float32)
