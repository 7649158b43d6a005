import random

import pytest

from spam_ham.config import PipelineConfig
from spam_ham.corpus import load_messages
from spam_ham.dataset import build_dataset, stratified_split
from spam_ham.features import top_terms
from spam_ham.models import fit_logistic
from spam_ham.preprocess import build_preprocessor, normalize_corpus
from spam_ham.term_matrix import build_term_matrix

# A slice of the NLTK English list, so the tests never need to download it
STOPWORDS = [
    "i", "me", "my", "we", "you", "your", "he", "she", "it", "they", "them",
    "what", "this", "that", "am", "is", "are", "was", "be", "have", "has",
    "do", "a", "an", "the", "and", "but", "if", "or", "of", "at", "by", "for",
    "with", "to", "from", "in", "on", "there", "here", "all", "no", "not",
    "so", "can", "will", "just", "up", "out",
]

HAM_WORDS = ["meet", "home", "later", "lunch", "love", "tonight", "sorry", "work", "dinner", "see"]
SPAM_WORDS = ["free", "win", "prize", "claim", "cash", "urgent", "offer", "text", "reply", "award"]
SHARED_WORDS = ["now", "today", "get", "good", "the", "you"]

TOP_K = 20


def synthetic_lines(n_ham=70, n_spam=40, seed=0):
    rng = random.Random(seed)
    lines = []
    for label, own, other, n in (("ham", HAM_WORDS, SPAM_WORDS, n_ham),
                                 ("spam", SPAM_WORDS, HAM_WORDS, n_spam)):
        for _ in range(n):
            words = []
            for _ in range(rng.randint(4, 8)):
                r = rng.random()
                pool = own if r < 0.7 else (other if r < 0.9 else SHARED_WORDS)
                words.append(rng.choice(pool))
            if label == "spam" and rng.random() < 0.5:
                words.append(str(rng.randint(10000, 99999)))
            if rng.random() < 0.3:
                words.append("call")
            lines.append(f"{label}\t{' '.join(words).capitalize()}!")
    rng.shuffle(lines)
    return lines


def write_corpus(path):
    path.write_text("\n".join(synthetic_lines()) + "\n", encoding="utf-8")
    return path


@pytest.fixture(scope="session")
def stopwords():
    return list(STOPWORDS)


@pytest.fixture(scope="session")
def preprocess(stopwords):
    return build_preprocessor(stopwords=stopwords, extra_stopwords=("call",))


@pytest.fixture(scope="session")
def corpus_path(tmp_path_factory):
    return write_corpus(tmp_path_factory.mktemp("corpus") / "sms.tsv")


@pytest.fixture(scope="session")
def messages(corpus_path):
    return load_messages(str(corpus_path))


@pytest.fixture(scope="session")
def matrix(messages, preprocess):
    documents = normalize_corpus(messages, preprocess)
    return build_term_matrix(documents, [m.id for m in messages])


@pytest.fixture(scope="session")
def vocabulary(matrix):
    return top_terms(matrix, TOP_K)


@pytest.fixture(scope="session")
def dataset(messages, matrix, vocabulary):
    return build_dataset(messages, matrix, vocabulary)


@pytest.fixture(scope="session")
def split(dataset):
    return stratified_split(dataset, 0.7, 123)


@pytest.fixture(scope="session")
def logistic(split, vocabulary):
    return fit_logistic(split.train, vocabulary)


@pytest.fixture
def config(corpus_path):
    return PipelineConfig(input_path=str(corpus_path), top_k=TOP_K)
