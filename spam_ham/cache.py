"""
Single-file cache of the expensive intermediate data (messages, normalized
documents, term matrix, vocabulary), saved with joblib.
"""

import hashlib
import logging
import os
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Sequence

import joblib

from .corpus import Message
from .preprocess import NORMALIZATION_VERSION
from .term_matrix import TermDocumentMatrix

logger = logging.getLogger(__name__)

FORMAT_VERSION = 2


class CacheKey(NamedTuple):
    source_sha256: str
    normalization_version: int
    stopwords_sha256: str
    extra_stopwords: tuple
    top_k: int


class Artifact(NamedTuple):
    messages: List[Message]
    documents: List[List[str]]
    matrix: TermDocumentMatrix
    vocabulary: tuple


def file_digest(path: str, chunk_size: int = 1 << 20) -> str:
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            h.update(chunk)
    return h.hexdigest()


def words_digest(words: Iterable[str]) -> str:
    """Order-insensitive digest of a word list."""
    joined = "\n".join(sorted({w.lower() for w in words}))
    return hashlib.sha256(joined.encode("utf-8")).hexdigest()


def cache_key(source_path: str, stopwords: Iterable[str], extra_stopwords: Sequence[str],
              top_k: int) -> CacheKey:
    """Key over everything the cached data depends on; ``stopwords`` is the base list actually used."""
    return CacheKey(
        source_sha256=file_digest(source_path),
        normalization_version=NORMALIZATION_VERSION,
        stopwords_sha256=words_digest(stopwords),
        extra_stopwords=tuple(sorted(extra_stopwords)),
        top_k=int(top_k),
    )


def save_artifact(cache_path: str, key: CacheKey, artifact: Artifact) -> None:
    bundle: Dict[str, Any] = {
        "format_version": FORMAT_VERSION,
        "key": tuple(key),
        "messages": artifact.messages,
        "documents": artifact.documents,
        "matrix": artifact.matrix,
        "vocabulary": tuple(artifact.vocabulary),
    }
    directory = os.path.dirname(os.path.abspath(cache_path))
    os.makedirs(directory, exist_ok=True)
    tmp_path = cache_path + ".tmp"
    joblib.dump(bundle, tmp_path)
    os.replace(tmp_path, cache_path)
    logger.info("Saved cached artifact to %s", cache_path)


def load_artifact(cache_path: str, key: CacheKey) -> Optional[Artifact]:
    """The cached artifact for ``key``, or None when it must be recomputed."""
    if not os.path.isfile(cache_path):
        logger.info("No cached artifact at %s", cache_path)
        return None

    bundle = joblib.load(cache_path)
    if not isinstance(bundle, dict) or bundle.get("format_version") != FORMAT_VERSION:
        logger.warning("Ignoring cached artifact %s: unknown format version", cache_path)
        return None
    if tuple(bundle.get("key", ())) != tuple(key):
        logger.info("Cached artifact %s is stale (inputs changed)", cache_path)
        return None

    logger.info("Loaded cached artifact from %s", cache_path)
    return Artifact(
        messages=bundle["messages"],
        documents=bundle["documents"],
        matrix=bundle["matrix"],
        vocabulary=tuple(bundle["vocabulary"]),
    )
