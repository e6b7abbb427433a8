"""Heuristic, line-oriented extraction of board/risk/topic structure from free text.

Every function here accepts any string and never raises: input that carries no
recognisable structure simply yields fewer (or zero) records.
"""

from __future__ import annotations

import re
from typing import List, Optional, Sequence, Tuple

from ..models.canvas import Level, RiskRecord, TaskRecord, TopicBranch, TopicTree

BULLET_PATTERN = re.compile(r"^[-*•]\s*")
HEADING_PATTERN = re.compile(r"^#+\s*")
BRANCH_HEADING_PATTERN = re.compile(r"^##?\s*")
BULLET_MARKERS = ("-", "*", "•")
MIN_TEXT_LENGTH = 3

# Checked in order; the first group with a hit moves the column cursor.
COLUMN_KEYWORDS: Sequence[Tuple[int, Tuple[str, ...]]] = (
    (0, ("todo", "to do", "pending")),
    (1, ("in progress", "working")),
    (2, ("review", "testing")),
    (3, ("done", "complete")),
)


def _non_blank_lines(text: str) -> List[str]:
    return [line for line in (text or "").split("\n") if line.strip()]


def strip_bullet(line: str) -> str:
    """Drop a leading ``-``, ``*`` or ``•`` marker and surrounding whitespace."""
    return BULLET_PATTERN.sub("", line.strip()).strip()


def detect_column(line: str) -> Optional[int]:
    lowered = line.lower()
    for column, keywords in COLUMN_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return column
    return None


def detect_priority(line: str) -> Level:
    lowered = line.lower()
    if "high" in lowered or "urgent" in lowered or "!" in lowered:
        return Level.HIGH
    if "low" in lowered:
        return Level.LOW
    return Level.MEDIUM


def detect_likelihood(line: str) -> Level:
    lowered = line.lower()
    if "high likelihood" in lowered or "likely" in lowered:
        return Level.HIGH
    if "low likelihood" in lowered or "unlikely" in lowered:
        return Level.LOW
    return Level.MEDIUM


def detect_impact(line: str) -> Level:
    lowered = line.lower()
    if "high impact" in lowered or "critical" in lowered:
        return Level.HIGH
    if "low impact" in lowered or "minor" in lowered:
        return Level.LOW
    return Level.MEDIUM


def extract_tasks(text: str) -> List[TaskRecord]:
    """
    Turn each meaningful line into a task.

    A keyword line ("in progress", "done", ...) moves the column cursor and the
    cursor sticks, so bullets under a heading land in the heading's column.
    """
    records: List[TaskRecord] = []
    column = 0
    for line in _non_blank_lines(text):
        detected = detect_column(line)
        if detected is not None:
            column = detected

        title = strip_bullet(line)
        if len(title) < MIN_TEXT_LENGTH:
            continue
        records.append(TaskRecord(title=title, column=column, priority=detect_priority(line)))
    return records


def extract_risks(text: str) -> List[RiskRecord]:
    """One risk per meaningful line, likelihood and impact inferred independently."""
    records: List[RiskRecord] = []
    for line in _non_blank_lines(text):
        title = strip_bullet(line)
        if len(title) < MIN_TEXT_LENGTH:
            continue
        records.append(
            RiskRecord(title=title, likelihood=detect_likelihood(line), impact=detect_impact(line))
        )
    return records


def _is_sub_item(line: str) -> bool:
    return line.startswith("  ") or line.startswith("\t") or line.strip().startswith(BULLET_MARKERS)


def extract_topics(text: str) -> TopicTree:
    """
    Build a topic tree: first line is the theme, unindented lines open branches,
    indented or bulleted lines become subtopics of the open branch.
    """
    lines = _non_blank_lines(text)
    if not lines:
        return TopicTree()

    central = strip_bullet(HEADING_PATTERN.sub("", lines[0].strip())) or TopicTree().central_theme
    branches: List[TopicBranch] = []
    current: Optional[TopicBranch] = None

    for line in lines[1:]:
        trimmed = line.strip()
        if _is_sub_item(line):
            subtopic = strip_bullet(trimmed)
            # Subtopics before the first branch have nowhere to go.
            if current is not None and subtopic:
                current.subtopics.append(subtopic)
            continue
        if len(trimmed) <= 2:
            continue
        if current is not None:
            branches.append(current)
        current = TopicBranch(topic=BRANCH_HEADING_PATTERN.sub("", strip_bullet(trimmed)))

    if current is not None:
        branches.append(current)

    return TopicTree(central_theme=central, branches=branches)


__all__ = [
    "detect_column",
    "detect_impact",
    "detect_likelihood",
    "detect_priority",
    "extract_risks",
    "extract_tasks",
    "extract_topics",
    "strip_bullet",
]
