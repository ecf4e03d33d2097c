"""The five-place high score table and the queue of scores awaiting a name."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterator, List, Optional

from .settings import Settings

TABLE_SIZE = 5
NAME_LENGTH = 31
EMPTY_SCORE = -999
DEFAULT_VERIFICATION = 7


def _wrap_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - (1 << 32) if value & 0x80000000 else value


def _name_sum(name: str) -> int:
    """Sum of the name's bytes, read as signed chars."""
    return sum(b - 256 if b > 127 else b for b in name.encode("utf-8"))


@dataclass
class HighScore:
    name: str = ""
    score: int = EMPTY_SCORE


@dataclass
class HighScoreEntry:
    """A score waiting for a place; ``position`` None means "work it out"."""

    entry: HighScore
    position: Optional[int] = None


class HighScoreTable:
    """Best scores first; an empty slot holds score -999."""

    def __init__(self) -> None:
        self.entries: List[HighScore] = [HighScore() for _ in range(TABLE_SIZE)]

    def __iter__(self) -> Iterator[HighScore]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __getitem__(self, index: int) -> HighScore:
        return self.entries[index]

    def clear(self) -> None:
        for entry in self.entries:
            entry.name = ""
            entry.score = EMPTY_SCORE

    def checksum(self) -> int:
        """The verification value stored alongside the table."""
        total = sum(_name_sum(e.name) + e.score for e in self.entries)
        return _wrap_int32(total)

    def read(self, settings: Settings) -> None:
        """Load the table; a failed verification leaves it cleared."""
        self.clear()
        for position, entry in enumerate(self.entries):
            entry.name = settings.get_string(f"{position}.Name", "")[:NAME_LENGTH]
            entry.score = settings.get_int(f"{position}.Score", entry.score)

        verification = settings.get_int("Verification", DEFAULT_VERIFICATION)
        if self.checksum() != verification:
            self.clear()

    def write(self, settings: Settings) -> None:
        for position, entry in enumerate(self.entries):
            settings.set_string(f"{position}.Name", entry.name)
            settings.set_int(f"{position}.Score", entry.score)
        settings.set_int("Verification", self.checksum())

    def get_score_position(self, score: int) -> Optional[int]:
        """The place ``score`` would take, or None if it does not qualify."""
        if score <= 0:
            return None
        for position, entry in enumerate(self.entries):
            if entry.score < score:
                return position
        return None

    def place_new_score(self, entry: HighScoreEntry) -> None:
        """Insert at ``entry.position``, pushing lower scores down."""
        position = entry.position
        if position is None or not 0 <= position < TABLE_SIZE:
            return
        new = HighScore(entry.entry.name[:NAME_LENGTH], entry.entry.score)
        self.entries.insert(position, new)
        del self.entries[TABLE_SIZE:]


@dataclass
class HighScoreQueue:
    """Scores waiting for the high score dialog, served oldest first."""

    pending: List[HighScoreEntry] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.pending)

    def push(self, entry: HighScoreEntry) -> None:
        self.pending.insert(0, entry)

    def next_entry(self, table: HighScoreTable) -> Optional[HighScoreEntry]:
        """Pop queued scores until one earns a place in ``table``."""
        while self.pending:
            data = self.pending.pop()
            position = data.position
            if position is None or not 0 <= position < TABLE_SIZE:
                position = table.get_score_position(data.entry.score)
            if position is not None:
                return replace(data, entry=replace(data.entry), position=position)
        return None