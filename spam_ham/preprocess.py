"""
Text normalization: whitespace, case, digits, punctuation, stopwords, stemming.
"""

import logging
import re
import string
import unicodedata
from typing import Callable, Iterable, List, Optional

import nltk
from nltk.corpus import stopwords as nltk_stopwords
from nltk.stem.porter import PorterStemmer

logger = logging.getLogger(__name__)

# Bump whenever the transform sequence below changes; keys the cached artifact.
NORMALIZATION_VERSION = 1

_WHITESPACE_RE = re.compile(r"\s+")
_DIGITS_RE = re.compile(r"\d+")
_PUNCT_TABLE = str.maketrans('', '', string.punctuation)

# ---------- Helpers ----------


def ensure_stopwords():
    try:
        _ = nltk_stopwords.words("english")
    except LookupError:
        logger.info("Downloading NLTK stopwords corpus")
        nltk.download("stopwords", quiet=True)


def strip_punctuation(text: str) -> str:
    """Drop ASCII punctuation and any other Unicode punctuation (curly quotes, ellipses...)."""
    text = text.translate(_PUNCT_TABLE)
    return "".join(ch for ch in text if not unicodedata.category(ch).startswith("P"))


def english_stopwords() -> List[str]:
    ensure_stopwords()
    return nltk_stopwords.words("english")


def build_preprocessor(
    stopwords: Optional[Iterable[str]] = None,
    extra_stopwords: Iterable[str] = ("call",),
    stemmer: Optional[PorterStemmer] = None,
) -> Callable[[str], List[str]]:
    """
    Return a function mapping raw message text to its stemmed tokens.

    ``stopwords`` defaults to the NLTK English list; ``extra_stopwords`` is the
    hand-curated supplement. Both are matched before stemming.
    """
    stemmer = stemmer or PorterStemmer()
    if stopwords is None:
        stopwords = english_stopwords()
    stopwords_set = {w.lower() for w in stopwords} | {w.lower() for w in extra_stopwords}

    def prepare_message_text(text: str) -> List[str]:
        text = _WHITESPACE_RE.sub(" ", text).strip()
        text = text.lower()
        text = _DIGITS_RE.sub("", text)
        text = strip_punctuation(text)
        # split() never yields empty tokens
        return [stemmer.stem(w) for w in text.split() if w not in stopwords_set]

    return prepare_message_text


def normalize_corpus(messages, preprocess: Callable[[str], List[str]]) -> List[List[str]]:
    documents = [preprocess(m.text) for m in messages]
    empty = sum(1 for d in documents if not d)
    if empty:
        logger.info("%d of %d messages are empty after normalization", empty, len(documents))
    return documents
