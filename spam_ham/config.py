"""
Pipeline configuration.

Defaults live in the ``spam_ham_config`` dict; the CLI layers its arguments
on top of it and builds a ``PipelineConfig``.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple

spam_ham_config = {
    "top_k": 50,
    "sparsity_threshold": 0.9,
    "split_ratio": 0.7,
    "seed": 123,
    # Frequent but uninformative once inspected through the sparsity report
    "extra_stopwords": ("call",),
    "nb_alpha": 1.0,
    "max_iter": 1000,
}


@dataclass(frozen=True)
class PipelineConfig:
    input_path: str
    top_k: int = spam_ham_config["top_k"]
    sparsity_threshold: float = spam_ham_config["sparsity_threshold"]
    split_ratio: float = spam_ham_config["split_ratio"]
    seed: int = spam_ham_config["seed"]
    extra_stopwords: Tuple[str, ...] = field(
        default=spam_ham_config["extra_stopwords"])
    nb_alpha: float = spam_ham_config["nb_alpha"]
    max_iter: int = spam_ham_config["max_iter"]
    cache_path: Optional[str] = None

    def __post_init__(self):
        if self.top_k < 1:
            raise ValueError(f"top_k must be >= 1, got {self.top_k}")
        if not 0.0 < self.sparsity_threshold < 1.0:
            raise ValueError(
                f"sparsity_threshold must be in (0, 1), got {self.sparsity_threshold}")
        if not 0.0 < self.split_ratio < 1.0:
            raise ValueError(
                f"split_ratio must be in (0, 1), got {self.split_ratio}")
        if self.nb_alpha <= 0:
            raise ValueError(f"nb_alpha must be > 0, got {self.nb_alpha}")
        if self.max_iter < 1:
            raise ValueError(f"max_iter must be >= 1, got {self.max_iter}")
        # Normalize to a lowercase tuple so it can key the cache
        object.__setattr__(self, "extra_stopwords",
                           tuple(w.strip().lower() for w in self.extra_stopwords if w.strip()))
