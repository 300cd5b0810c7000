"""Chronological activity feed built from access and submission logs."""
from __future__ import annotations

import heapq
from typing import Any, Iterable, Iterator, Sequence

from .models import AccessEvent, SubmissionEvent
from .types import ActivityEventDict


def _access_entry(access: AccessEvent) -> dict[str, Any]:
    return {
        "username": access.username,
        "time": int(access.time),
        "ip": access.ip,
        "event": {"name": "open"},
    }


def _submission_entry(submission: SubmissionEvent) -> dict[str, Any]:
    return {
        "username": submission.username,
        "time": int(submission.time),
        "ip": submission.ip,
        "event": {"name": "submit", "problem": submission.problem},
    }


def _keyed(entries: Iterable[dict[str, Any]], stream: int) -> Iterator[tuple[int, int, int, dict[str, Any]]]:
    for seq, entry in enumerate(entries):
        yield (entry["time"], stream, seq, entry)


def merge_streams(*streams: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """k-way merge of time-sorted streams; on equal times earlier streams go first."""
    merged = heapq.merge(*(_keyed(stream, i) for i, stream in enumerate(streams)))
    return [entry for _, _, _, entry in merged]


def anonymize_ips(events: list[dict[str, Any]]) -> list[dict[str, Any]]:
    mapping: dict[Any, int] = {}
    for entry in events:
        raw = entry["ip"]
        if raw not in mapping:
            mapping[raw] = len(mapping)
        entry["ip"] = mapping[raw]
    return events


def merge_activity(
    accesses: Sequence[AccessEvent],
    submissions: Sequence[SubmissionEvent],
) -> list[ActivityEventDict]:
    """Interleave both logs by time and replace addresses with small integers.

    Both inputs must already be sorted ascending by time. At equal timestamps the
    submission is emitted before the access.
    """
    events = merge_streams(
        (_submission_entry(s) for s in submissions),
        (_access_entry(a) for a in accesses),
    )
    return anonymize_ips(events)  # type: ignore[return-value]


__all__ = ["anonymize_ips", "merge_activity", "merge_streams"]
