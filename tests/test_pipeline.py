import os

import pytest

from spam_ham import preprocess, spam_ham_train
from spam_ham.config import PipelineConfig
from spam_ham.dataset import LABEL_COLUMN
from spam_ham.spam_ham_train import main, run_pipeline

from .conftest import STOPWORDS, TOP_K


def test_run_pipeline(config):
    result = run_pipeline(config, stopwords=STOPWORDS)
    assert len(result.vocabulary) == TOP_K
    assert len(result.split.train) + len(result.split.test) == len(result.messages)
    assert set(result.logistic.terms) <= set(result.vocabulary)
    assert result.naive_bayes.terms == (result.logistic.terms or result.vocabulary)
    for ev in (result.logistic_eval, result.naive_bayes_eval):
        assert ev.confusion.to_numpy().sum() == len(result.split.test)
    assert (result.sparse > config.sparsity_threshold).all()


def test_run_pipeline_is_deterministic(config):
    a = run_pipeline(config, stopwords=STOPWORDS)
    b = run_pipeline(config, stopwords=STOPWORDS)
    assert a.vocabulary == b.vocabulary
    assert list(a.split.test.index) == list(b.split.test.index)
    assert a.logistic.coefficients().equals(b.logistic.coefficients())
    assert a.naive_bayes_eval.probabilities.equals(b.naive_bayes_eval.probabilities)


def test_cache_is_reused(tmp_path, corpus_path):
    cache_path = str(tmp_path / "artifact.joblib")
    config = PipelineConfig(input_path=str(corpus_path), top_k=TOP_K, cache_path=cache_path)
    first = run_pipeline(config, stopwords=STOPWORDS)
    assert os.path.isfile(cache_path)
    mtime = os.path.getmtime(cache_path)
    second = run_pipeline(config, stopwords=STOPWORDS)
    assert os.path.getmtime(cache_path) == mtime
    assert second.vocabulary == first.vocabulary
    assert second.dataset[LABEL_COLUMN].equals(first.dataset[LABEL_COLUMN])


def test_cache_follows_the_stopword_list(tmp_path, corpus_path):
    cache_path = str(tmp_path / "artifact.joblib")
    config = PipelineConfig(input_path=str(corpus_path), top_k=TOP_K, cache_path=cache_path)
    first = run_pipeline(config, stopwords=STOPWORDS)
    assert "free" in first.vocabulary

    second = run_pipeline(config, stopwords=STOPWORDS + ["free", "win", "meet"])
    assert "free" not in second.vocabulary
    assert "meet" not in second.matrix


def test_config_validation(corpus_path):
    with pytest.raises(ValueError):
        PipelineConfig(input_path=str(corpus_path), split_ratio=1.5)
    with pytest.raises(ValueError):
        PipelineConfig(input_path=str(corpus_path), top_k=0)
    assert PipelineConfig(input_path="x", extra_stopwords=(" Call ",)).extra_stopwords == ("call",)


@pytest.fixture
def offline_stopwords(monkeypatch):
    monkeypatch.setattr(preprocess, "english_stopwords", lambda: list(STOPWORDS))
    monkeypatch.setattr(spam_ham_train, "english_stopwords", lambda: list(STOPWORDS))


def test_main_prints_report(corpus_path, capsys, offline_stopwords):
    code = main([str(corpus_path), "--top-k", "10", "--seed", "7", "--assoc", "free"])
    out = capsys.readouterr().out
    assert code == 0
    assert "Vocabulary (10 terms)" in out
    assert "(Intercept)" in out
    assert "logistic regression" in out
    assert "naive bayes" in out
    assert "Terms associated with 'free'" in out


def test_main_missing_file(tmp_path, offline_stopwords):
    assert main([str(tmp_path / "missing.tsv")]) == 1


def test_main_unknown_assoc_term(corpus_path, offline_stopwords):
    assert main([str(corpus_path), "--top-k", "10", "--assoc", "zzz"]) == 1
