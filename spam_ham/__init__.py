"""SMS spam/ham classification with a bag-of-words pipeline."""

__version__ = "0.1.0"
