"""Append-only discussion log."""

from collections.abc import Iterator

from focus_group.models import TranscriptEntry


class Transcript:
    """Ordered log of moderator and participant entries.

    Entries are frozen dataclasses and the list is only ever appended to,
    so positions and contents never change once written.
    """

    def __init__(self) -> None:
        self._entries: list[TranscriptEntry] = []

    def append(self, entry: TranscriptEntry) -> None:
        self._entries.append(entry)

    def export(self) -> tuple[TranscriptEntry, ...]:
        return tuple(self._entries)

    def recent(self, k: int) -> list[TranscriptEntry]:
        if k <= 0:
            return []
        return self._entries[-k:]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[TranscriptEntry]:
        return iter(tuple(self._entries))
