#!/usr/bin/env python3
"""
Train spam/ham classifiers on an SMS corpus and report held-out accuracy.

Usage:
  python -m spam_ham.spam_ham_train SMSSpamCollection
  python -m spam_ham.spam_ham_train SMSSpamCollection --seed 7 --top-k 40 --cache cache/sms.joblib
  python -m spam_ham.spam_ham_train SMSSpamCollection --assoc free --assoc-threshold 0.2

The input is one message per line, ``label<TAB>text`` with label ham or spam.
"""

import argparse
import logging
import sys
from dataclasses import dataclass
from typing import List, Optional

import pandas as pd

from .cache import Artifact, cache_key, load_artifact, save_artifact
from .config import PipelineConfig, spam_ham_config
from .corpus import Message, label_counts, load_messages
from .dataset import Split, build_dataset, stratified_split
from .evaluate import Evaluation, evaluate_logistic, evaluate_naive_bayes
from .features import sparse_terms, top_terms
from .models import LogisticModel, NaiveBayesModel, fit_logistic, fit_naive_bayes
from .preprocess import build_preprocessor, english_stopwords, normalize_corpus
from .term_matrix import TermDocumentMatrix, build_term_matrix

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    config: PipelineConfig
    messages: List[Message]
    matrix: TermDocumentMatrix
    vocabulary: tuple
    sparse: pd.Series
    dataset: pd.DataFrame
    split: Split
    logistic: LogisticModel
    naive_bayes: NaiveBayesModel
    logistic_eval: Evaluation
    naive_bayes_eval: Evaluation


# ---------- Helpers ----------

def prepare_corpus(config: PipelineConfig, stopwords=None) -> Artifact:
    """Load, normalize, count and select terms; reuse the cache when its key still matches."""
    # Resolve the base list up front: it is part of the cache key
    stopwords = list(stopwords) if stopwords is not None else english_stopwords()
    key = None
    if config.cache_path:
        key = cache_key(config.input_path, stopwords, config.extra_stopwords, config.top_k)
        artifact = load_artifact(config.cache_path, key)
        if artifact is not None:
            return artifact

    messages = load_messages(config.input_path)
    if not messages:
        raise ValueError(f"No usable messages in {config.input_path}")
    preprocess = build_preprocessor(stopwords=stopwords, extra_stopwords=config.extra_stopwords)
    documents = normalize_corpus(messages, preprocess)
    matrix = build_term_matrix(documents, [m.id for m in messages])
    vocabulary = top_terms(matrix, config.top_k)
    artifact = Artifact(messages=messages, documents=documents, matrix=matrix,
                        vocabulary=vocabulary)

    if config.cache_path:
        save_artifact(config.cache_path, key, artifact)
    return artifact


# ---------- Training ----------

def run_pipeline(config: PipelineConfig, stopwords=None) -> PipelineResult:
    artifact = prepare_corpus(config, stopwords=stopwords)
    logger.info("Label counts: %s", label_counts(artifact.messages).to_dict())

    sparse = sparse_terms(artifact.matrix, config.sparsity_threshold)
    logger.info("%d terms are sparser than %.2f", len(sparse), config.sparsity_threshold)

    dataset = build_dataset(artifact.messages, artifact.matrix, artifact.vocabulary)
    split = stratified_split(dataset, config.split_ratio, config.seed)

    logistic = fit_logistic(split.train, artifact.vocabulary, max_iter=config.max_iter)
    # Same reduced term set for both models so they are comparable
    naive_bayes = fit_naive_bayes(split.train, artifact.vocabulary, terms=logistic.terms,
                                  alpha=config.nb_alpha)

    return PipelineResult(
        config=config,
        messages=artifact.messages,
        matrix=artifact.matrix,
        vocabulary=artifact.vocabulary,
        sparse=sparse,
        dataset=dataset,
        split=split,
        logistic=logistic,
        naive_bayes=naive_bayes,
        logistic_eval=evaluate_logistic(logistic, split.test),
        naive_bayes_eval=evaluate_naive_bayes(naive_bayes, split.test),
    )


def print_report(result: PipelineResult, assoc: Optional[str] = None,
                 assoc_threshold: float = 0.2) -> None:
    print(f"Messages: {len(result.messages)} "
          f"(train {len(result.split.train)}, test {len(result.split.test)})")
    print(f"\nVocabulary ({len(result.vocabulary)} terms):")
    print(" ".join(result.vocabulary))

    print(f"\nReduced logistic regression ({len(result.logistic.terms)} terms, "
          f"AIC={result.logistic.aic:.2f}):")
    print(result.logistic.coefficients().to_string())

    for evaluation in (result.logistic_eval, result.naive_bayes_eval):
        print(f"\n{evaluation.summary()}")
        print("Confusion matrix (rows actual, columns predicted; 0=spam, 1=ham):")
        print(evaluation.confusion.to_string())

    if assoc:
        print(f"\nTerms associated with {assoc!r} (r >= {assoc_threshold}):")
        assocs = result.matrix.find_associations(assoc, assoc_threshold)
        print(assocs.to_string() if len(assocs) else "(none)")


def build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        description="Train logistic regression and Naive Bayes spam/ham classifiers.")
    ap.add_argument("input", help="Tab-separated corpus: label<TAB>text per line")
    ap.add_argument("--seed", type=int, help="Random seed for the train/test split")
    ap.add_argument("--top-k", dest="top_k", type=int, help="Vocabulary size")
    ap.add_argument("--sparsity-threshold", dest="sparsity_threshold", type=float,
                    help="Report terms absent from more than this fraction of messages")
    ap.add_argument("--split-ratio", dest="split_ratio", type=float,
                    help="Fraction of messages used for training")
    ap.add_argument("--extra-stopword", dest="extra_stopwords", action="append",
                    help="Supplemental stopword (repeatable; replaces the default list)")
    ap.add_argument("--cache", dest="cache_path",
                    help="Path of the cached intermediate artifact")
    ap.add_argument("--assoc", help="Show terms correlated with this (stemmed) term")
    ap.add_argument("--assoc-threshold", dest="assoc_threshold", type=float, default=0.2)
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    ap.set_defaults(**spam_ham_config)
    # append would extend the default tuple; None means "use the default list"
    ap.set_defaults(extra_stopwords=None)
    return ap


def main(argv=None):
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = PipelineConfig(
            input_path=args.input,
            top_k=args.top_k,
            sparsity_threshold=args.sparsity_threshold,
            split_ratio=args.split_ratio,
            seed=args.seed,
            extra_stopwords=tuple(args.extra_stopwords or spam_ham_config["extra_stopwords"]),
            nb_alpha=args.nb_alpha,
            max_iter=args.max_iter,
            cache_path=args.cache_path,
        )
        result = run_pipeline(config)
    except (OSError, ValueError, LookupError) as exc:
        logger.error("%s", exc)
        return 1

    try:
        print_report(result, assoc=args.assoc, assoc_threshold=args.assoc_threshold)
    except KeyError as exc:
        logger.error("%s", exc.args[0])
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
