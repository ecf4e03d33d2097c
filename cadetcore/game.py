"""Game-level helpers: data file selection, input matching, scoring and frame timing."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from .high_score import NAME_LENGTH, HighScore, HighScoreEntry, HighScoreTable
from .settings import GameInput

MAX_FRAME_MS = 100.0
"""Longest frame the simulation will advance in one step."""

NUDGE_WARNING_LEVEL = 0.5
NUDGE_TILT_LEVEL = 1.0

_DAT_FILE_NAMES = ("CADET.DAT", "PINBALL.DAT", "DEMO.DAT")
_FULL_TILT_FILE = "CADET.DAT"
_DEMO_FILE = "DEMO.DAT"

_SCANF_INT = re.compile(r"\s*([+-]?\d+)")


class GameMode(enum.IntEnum):
    IN_GAME = 1
    GAME_OVER = 2


@dataclass(frozen=True)
class DatSelection:
    """The game data file found on disk and the mode it implies."""

    base_path: str
    file_name: str
    full_tilt_mode: bool
    full_tilt_demo_mode: bool

    @property
    def path(self) -> str:
        return make_path_name(self.base_path, self.file_name)


def make_path_name(base_path: str, file_name: str) -> str:
    """Join a base path and a file name; the base path carries its own separator."""
    return base_path + file_name


def _can_open(path: str) -> bool:
    try:
        with open(path, "r"):
            return True
    except OSError:
        return False


def select_dat_file(
    search_paths: Iterable[Optional[str]], prefer_3dpb: bool = False
) -> Optional[DatSelection]:
    """Find the first game data file in the search paths, or None.

    Files are tried in the order CADET.DAT, PINBALL.DAT, DEMO.DAT; the first
    two swap places when 3D Pinball data is preferred.
    """
    names = list(_DAT_FILE_NAMES)
    if prefer_3dpb:
        names[0], names[1] = names[1], names[0]

    for base_path in search_paths:
        if base_path is None:
            continue
        for name in names:
            if _can_open(make_path_name(base_path, name)):
                demo = name == _DEMO_FILE
                return DatSelection(
                    base_path=base_path,
                    file_name=name,
                    full_tilt_mode=demo or name == _FULL_TILT_FILE,
                    full_tilt_demo_mode=demo,
                )
    return None


def any_binding_matches_input(bindings: Sequence[GameInput], key: GameInput) -> bool:
    """Whether ``key`` is one of the control's bindings."""
    return any(key == binding for binding in bindings)


def rank_players(scores: Sequence[int]) -> List[Tuple[int, int]]:
    """Order players by score, best first, as (score, player_index) pairs.

    Uses the game's exchange sort, so the order of tied players is kept as
    the game has it.
    """
    ranked = [(score, index) for index, score in enumerate(scores)]
    count = len(ranked)
    for i in range(count):
        for j in range(i + 1, count):
            if ranked[j][0] > ranked[i][0]:
                ranked[i], ranked[j] = ranked[j], ranked[i]
    return ranked


def end_game_entries(
    scores: Sequence[int], names: Sequence[str], table: HighScoreTable
) -> List[HighScoreEntry]:
    """High score entries for the players whose scores qualify, best first.

    ``names`` gives each player's default name; a player without one uses
    the first name. Each entry's position is left for the queue to work out.
    """
    if not names:
        raise ValueError("at least one player name is required")
    entries = []
    for score, index in rank_players(scores):
        if table.get_score_position(score) is None:
            continue
        name = names[index] if index < len(names) else names[0]
        entries.append(HighScoreEntry(HighScore(name[:NAME_LENGTH], score), None))
    return entries


def parse_text_box_color(text: Optional[str]) -> int:
    """Parse "red green blue" into a packed colour with full alpha.

    Missing components stay white; the result packs red in the low byte,
    then green, blue and alpha.
    """
    channels = [255, 255, 255]
    if text:
        pos = 0
        for i in range(3):
            match = _SCANF_INT.match(text, pos)
            if not match:
                break
            channels[i] = int(match.group(1))
            pos = match.end()
    red, green, blue = (value & 0xFFFFFFFF for value in channels)
    return ((255 << 24) | (blue << 16) | (green << 8) | red) & 0xFFFFFFFF


@dataclass(frozen=True)
class FrameStep:
    """What one frame advanced, and whether the nudging warrants a warning or a tilt."""

    start_time: float
    time_delta: float
    end_time: float
    ticks_elapsed: int
    tilt_warning: bool
    tilt: bool


@dataclass
class FrameClock:
    """Game time, millisecond ticks and the nudge meter."""

    time_now: float = 0.0
    time_next: float = 0.0
    time_ticks: int = 0
    time_ticks_remainder: float = 0.0
    nudge_count: float = 0.0

    def advance(self, dt_ms: float, nudged: bool = False) -> Optional[FrameStep]:
        """Advance by ``dt_ms`` milliseconds, capped at 100; None for a non-positive step."""
        if dt_ms > MAX_FRAME_MS:
            dt_ms = MAX_FRAME_MS
        if dt_ms <= 0:
            return None

        dt_sec = dt_ms * 0.001
        start = self.time_now
        self.time_next = self.time_now + dt_sec
        self.time_now = self.time_next

        dt_ms += self.time_ticks_remainder
        whole = int(dt_ms)
        self.time_ticks_remainder = dt_ms - whole
        self.time_ticks += whole

        if nudged:
            self.nudge_count = dt_sec * 4.0 + self.nudge_count
        else:
            self.nudge_count = max(self.nudge_count - dt_sec, 0.0)

        return FrameStep(
            start_time=start,
            time_delta=dt_sec,
            end_time=self.time_now,
            ticks_elapsed=whole,
            tilt_warning=self.nudge_count > NUDGE_WARNING_LEVEL,
            tilt=self.nudge_count > NUDGE_TILT_LEVEL,
        )