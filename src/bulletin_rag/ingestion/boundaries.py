"""Named boundary-matcher rules used by the semantic chunker.

Each rule answers one question: *given text and a cursor, where is the next
place a new logical record starts?*  Rules are independent and can be
tested on their own; :func:`find_next_boundary` combines them.

All patterns operate on sanitised text, i.e. a single line with runs of
whitespace collapsed to one space.
"""

from __future__ import annotations

import re
from dataclasses import dataclass


@dataclass(frozen=True)
class BoundaryMatch:
    """A proposed split point.

    Attributes
    ----------
    start:
        Offset where the new segment begins.
    end:
        Offset just past the matched marker; scanning resumes here.
    rule:
        Name of the rule that produced the match.
    priority:
        Rule priority (lower wins ties at the same offset).
    """

    start: int
    end: int
    rule: str
    priority: int


@dataclass(frozen=True)
class BoundaryRule:
    """A single regex-backed boundary detector."""

    name: str
    priority: int
    pattern: re.Pattern[str]

    def next_boundary(self, text: str, cursor: int) -> BoundaryMatch | None:
        """Return the first match at or after *cursor*, or ``None``."""
        match = self.pattern.search(text, cursor)
        if match is None:
            return None
        return BoundaryMatch(
            start=match.start(),
            end=max(match.end(), match.start() + 1),
            rule=self.name,
            priority=self.priority,
        )


# "CSCI 10. Introduction to Computer Science. " starts a course-catalogue entry.
# The title must be capitalised and must not itself be a course code, so a
# trailing "Prerequisite: CSCI 9." does not start a new entry.
COURSE_START = BoundaryRule(
    name="course_start",
    priority=0,
    pattern=re.compile(r"\b[A-Z]{2,4} \d{1,3}[A-Z]?\.? (?![A-Z]{2,4} \d)[A-Z][^.]*\. "),
)

# "Major Requirements", "Computer Science Minor", "Academic Policy" ...
SECTION_HEADING = BoundaryRule(
    name="section_heading",
    priority=1,
    pattern=re.compile(
        r"\b(?:[A-Z][a-z]+ )+"
        r"(?:Requirements|Information|Policy|Courses|Program|Major|Minor|Concentration)\b"
    ),
)

# "- Item" / "* Item" list entries.
BULLET = BoundaryRule(
    name="bullet",
    priority=2,
    pattern=re.compile(r"(?:(?<= )|^)[-*] (?=[A-Z])"),
)

DEFAULT_RULES: tuple[BoundaryRule, ...] = (COURSE_START, SECTION_HEADING, BULLET)


def find_next_boundary(
    rules: tuple[BoundaryRule, ...] | list[BoundaryRule],
    text: str,
    cursor: int,
) -> BoundaryMatch | None:
    """Return the earliest boundary at or after *cursor* across *rules*.

    Ties at the same offset go to the rule with the lowest ``priority``
    (course start, then section heading, then bullet).
    """
    best: BoundaryMatch | None = None
    for rule in rules:
        found = rule.next_boundary(text, cursor)
        if found is None:
            continue
        if best is None or (found.start, found.priority) < (best.start, best.priority):
            best = found
    return best
