"""Line and word level diffs between a base resume and its optimized rewrite.

Segments cover both texts completely: joining every segment that is not
``removed`` gives back the revised text, joining every segment that is not
``added`` gives back the original.
"""
import re
from difflib import SequenceMatcher
from typing import List

from .schemas import DiffPart, DiffResult, DiffStats

# whitespace runs, words (with inner apostrophes/hyphens), then any single other char
WORD_RE = re.compile(r"\s+|[\w'\-]+|[^\w\s]")


def split_lines(text: str) -> List[str]:
    return text.splitlines(keepends=True)


def split_words(text: str) -> List[str]:
    return WORD_RE.findall(text)


def _append(parts: List[DiffPart], tokens: List[str], added: bool = False, removed: bool = False) -> None:
    if not tokens:
        return
    last = parts[-1] if parts else None
    if last is not None and last.added == added and last.removed == removed:
        last.value += "".join(tokens)
        last.count += len(tokens)
    else:
        parts.append(DiffPart(value="".join(tokens), added=added, removed=removed, count=len(tokens)))


def diff_tokens(a: List[str], b: List[str]) -> List[DiffPart]:
    """Partition two token lists into unchanged / removed / added segments."""
    parts: List[DiffPart] = []
    matcher = SequenceMatcher(None, a, b, autojunk=False)
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            _append(parts, a[i1:i2])
        else:
            # removals are emitted ahead of the additions that replace them
            _append(parts, a[i1:i2], removed=True)
            _append(parts, b[j1:j2], added=True)
    return parts


def _check_text(value, name: str) -> None:
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a string, got {type(value).__name__}")


def compute_diff(original: str, revised: str) -> DiffResult:
    _check_text(original, "original")
    _check_text(revised, "revised")
    line_diff = diff_tokens(split_lines(original), split_lines(revised))
    word_diff = diff_tokens(split_words(original), split_words(revised))
    return DiffResult(lineDiff=line_diff, wordDiff=word_diff, stats=compute_diff_stats(line_diff))


def compute_diff_stats(line_diff: List[DiffPart]) -> DiffStats:
    """Count lines per segment: newlines in the text, at least one when non-empty."""
    additions = deletions = unchanged = 0
    for part in line_diff:
        if not part.value:
            continue
        lines = part.value.count("\n") or 1
        if part.added:
            additions += lines
        elif part.removed:
            deletions += lines
        else:
            unchanged += lines
    return DiffStats(
        additions=additions,
        deletions=deletions,
        unchanged=unchanged,
        total=additions + deletions + unchanged,
    )
