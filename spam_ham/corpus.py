"""
Load labeled SMS messages from a ``label<TAB>text`` file.
"""

import logging
from dataclasses import dataclass
from typing import List

import pandas as pd

logger = logging.getLogger(__name__)

KNOWN_LABELS = ("ham", "spam")


@dataclass(frozen=True)
class Message:
    id: int
    label: str
    text: str


def parse_line(line: str):
    """Split one line into (label, text) on the first tab, or None if there is no tab."""
    label, sep, text = line.partition("\t")
    if not sep:
        return None
    return label.strip(), text


def load_messages(path: str) -> List[Message]:
    """
    Read every non-blank line of ``path`` into a Message.

    Ids are 1-based positions among the non-blank lines, so a dropped
    malformed line still uses up its id. Warnings quote physical line numbers.
    """
    # open() errors already carry the path in .filename
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        raw_lines = [line.rstrip("\r\n") for line in f]

    messages: List[Message] = []
    position = 0
    for line_no, line in enumerate(raw_lines, start=1):
        if not line.strip():
            continue
        position += 1
        parsed = parse_line(line)
        if parsed is None:
            logger.warning("Dropping line %d of %s: no tab separator", line_no, path)
            continue
        label, text = parsed
        if label not in KNOWN_LABELS:
            logger.warning("Line %d of %s has unrecognized label %r", line_no, path, label)
        messages.append(Message(id=position, label=label, text=text))

    logger.info("Loaded %d messages from %s", len(messages), path)
    return messages


def label_counts(messages: List[Message]) -> pd.Series:
    return pd.Series([m.label for m in messages], dtype=object).value_counts()
