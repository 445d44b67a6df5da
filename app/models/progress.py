"""Progress document and derived statistics.

A user's progress is one JSON document holding five ordered sequences.
Each item carries a sequence-specific key field that is unique inside
its own sequence only.  The functions here are pure: they take a
document and return a new one, so the server-side mutator and the
client's local mirror apply exactly the same structural change.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import asdict, dataclass, fields, replace
from types import MappingProxyType
from typing import Any, Literal, TypeAlias

from app.core.errors import ITEM_NOT_FOUND, NotFoundError, ValidationError

SequenceName = Literal[
    "quizScores",
    "assignments",
    "journalEntries",
    "materialsViewed",
    "videosWatched",
]

Item: TypeAlias = dict[str, Any]
ProgressDoc: TypeAlias = dict[str, list[Item]]

# Sequence name -> key field.  Every append/update/delete path looks the
# key up here; a new sequence type is added in this one place.
SEQUENCE_KEY_FIELDS: Mapping[str, str] = MappingProxyType(
    {
        "quizScores": "quizId",
        "assignments": "assignmentId",
        "journalEntries": "entryId",
        "materialsViewed": "materialId",
        "videosWatched": "videoId",
    }
)

SEQUENCES: tuple[str, ...] = tuple(SEQUENCE_KEY_FIELDS)

# Fields a patch may overwrite.  The key field is never patchable.
PATCHABLE_FIELDS: Mapping[str, frozenset[str]] = MappingProxyType(
    {
        "quizScores": frozenset({"score", "maxScore", "percentage", "answers"}),
        "assignments": frozenset({"title", "files", "status"}),
        "journalEntries": frozenset({"content", "tags"}),
        "materialsViewed": frozenset({"title", "timeSpent"}),
        "videosWatched": frozenset({"title", "completionPercentage"}),
    }
)


def key_field_for(sequence: str) -> str:
    try:
        return SEQUENCE_KEY_FIELDS[sequence]
    except KeyError:
        raise ValidationError(f"Unknown progress sequence: {sequence}") from None


def empty_progress() -> ProgressDoc:
    return {name: [] for name in SEQUENCES}


def normalize_progress(raw: Mapping[str, Any] | None) -> ProgressDoc:
    """Return a document with all five sequences present as lists.

    Unknown top-level keys are preserved so nothing stored is dropped.
    Anything other than a mapping yields the empty document.
    """
    doc: ProgressDoc = {}
    if isinstance(raw, Mapping):
        for name, value in raw.items():
            doc[name] = list(value) if isinstance(value, list) else []
    for name in SEQUENCES:
        doc.setdefault(name, [])
    return doc


def find_item(progress: Mapping[str, list[Item]], sequence: str, item_key: str) -> Item | None:
    key_field = key_field_for(sequence)
    for item in progress.get(sequence, []):
        if item.get(key_field) == item_key:
            return item
    return None


def append_item(progress: Mapping[str, list[Item]], sequence: str, item: Item) -> ProgressDoc:
    key_field_for(sequence)
    doc = normalize_progress(copy.deepcopy(dict(progress)))
    doc[sequence].append(dict(item))
    return doc


def validate_patch(sequence: str, patch: Mapping[str, Any]) -> None:
    key_field_for(sequence)
    rejected = sorted(set(patch) - PATCHABLE_FIELDS[sequence])
    if rejected:
        raise ValidationError(f"Field tidak dapat diubah: {', '.join(rejected)}")


def update_item(
    progress: Mapping[str, list[Item]],
    sequence: str,
    item_key: str,
    patch: Mapping[str, Any],
) -> tuple[ProgressDoc, Item]:
    """Merge ``patch`` into the item keyed ``item_key``.

    Raises NotFoundError when no item carries that key.
    """
    key_field = key_field_for(sequence)
    validate_patch(sequence, patch)

    doc = normalize_progress(copy.deepcopy(dict(progress)))
    for index, item in enumerate(doc[sequence]):
        if item.get(key_field) == item_key:
            updated = {**item, **patch}
            doc[sequence][index] = updated
            return doc, updated
    raise NotFoundError(ITEM_NOT_FOUND)


def remove_item(progress: Mapping[str, list[Item]], sequence: str, item_key: str) -> ProgressDoc:
    """Drop every item keyed ``item_key``; absent keys are not an error."""
    key_field = key_field_for(sequence)
    doc = normalize_progress(copy.deepcopy(dict(progress)))
    doc[sequence] = [item for item in doc[sequence] if item.get(key_field) != item_key]
    return doc


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------

_STAT_WIRE_NAMES = MappingProxyType(
    {
        "total_quiz_attempts": "totalQuizAttempts",
        "average_quiz_score": "averageQuizScore",
        "total_study_time": "totalStudyTime",
        "streak_days": "streakDays",
    }
)
_STAT_FIELD_NAMES = MappingProxyType({v: k for k, v in _STAT_WIRE_NAMES.items()})


@dataclass(frozen=True, slots=True)
class Statistics:
    """Derived counters stored next to the progress document.

    average_quiz_score is a 0-100 percentage; total_study_time is minutes.
    """

    total_quiz_attempts: int = 0
    average_quiz_score: int = 0
    total_study_time: int = 0
    streak_days: int = 0

    @staticmethod
    def from_dict(raw: Mapping[str, Any] | None) -> Statistics:
        if not raw:
            return Statistics()
        values = {
            field: int(raw.get(wire) or 0) for field, wire in _STAT_WIRE_NAMES.items()
        }
        return Statistics(**values)

    def to_dict(self) -> dict[str, int]:
        return {_STAT_WIRE_NAMES[k]: v for k, v in asdict(self).items()}

    def merged(self, changes: Mapping[str, Any]) -> Statistics:
        """Overwrite only the keys in ``changes`` (wire names)."""
        unknown = sorted(set(changes) - set(_STAT_FIELD_NAMES))
        if unknown:
            raise ValidationError(f"Unknown statistics field: {', '.join(unknown)}")
        return replace(self, **{_STAT_FIELD_NAMES[k]: int(v) for k, v in changes.items()})


STATISTICS_FIELDS: tuple[str, ...] = tuple(_STAT_WIRE_NAMES[f.name] for f in fields(Statistics))
