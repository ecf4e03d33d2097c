"""Music track state and conversion of MIDS streams to standard MIDI files."""

from __future__ import annotations

import enum
import os
import struct
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple, Union

_U32 = struct.Struct("<I")


class MidiTracks(enum.Enum):
    NONE = 0
    TRACK1 = 1
    TRACK2 = 2
    TRACK3 = 3


class MdsFormatError(ValueError):
    """The MIDS data is malformed."""


def to_variable_len(value: int) -> bytes:
    """Encode a MIDI variable-length quantity."""
    if value < 0:
        raise ValueError("variable-length quantity must be non-negative")
    groups = [value & 0x7F]
    value >>= 7
    while value:
        groups.append((value & 0x7F) | 0x80)
        value >>= 7
    return bytes(reversed(groups))


class _Reader:
    def __init__(self, data: bytes) -> None:
        self.data = data

    def u32(self, offset: int) -> int:
        if offset < 0 or offset + 4 > len(self.data):
            raise MdsFormatError("unexpected end of MIDS data")
        return _U32.unpack_from(self.data, offset)[0]

    def tag(self, offset: int) -> bytes:
        if offset < 0 or offset + 4 > len(self.data):
            raise MdsFormatError("unexpected end of MIDS data")
        return self.data[offset : offset + 4]


def _read_events(reader: _Reader, offset: int, block_count: int, stream_id_used: bool) -> List[Tuple[int, int]]:
    event_dwords = 3 if stream_id_used else 2
    events = []
    for _ in range(block_count):
        ticks = reader.u32(offset)
        size = reader.u32(offset + 4)
        payload = offset + 8
        if payload + size > len(reader.data):
            raise MdsFormatError("MIDS block runs past the end of the data")
        for i in range(size // (4 * event_dwords)):
            base = payload + i * 4 * event_dwords
            ticks = (ticks + reader.u32(base)) & 0xFFFFFFFF
            event = reader.u32(base + 4 * (event_dwords - 1))
            events.append((ticks, event))
        offset = payload + size
    return events


def _encode_event(event: int) -> bytes:
    kind = event >> 24
    if kind == 0:
        # Short message: status, p1, p2; program change and channel pressure take one parameter.
        raw = _U32.pack(event)
        short = (event & 0xF0) in (0xC0, 0xD0)
        return raw[: 2 if short else 3]
    if kind == 1:
        # Tempo change as a set-tempo meta event.
        return b"\xff\x51\x03" + struct.pack(">I", event)[1:]
    raise MdsFormatError(f"unknown MIDS event type {kind}")


def mds_to_midi(data: bytes) -> bytes:
    """Convert a RIFF MIDS stream to a single-track standard MIDI file."""
    file_size = len(data)
    reader = _Reader(data)
    if file_size < 12:
        raise MdsFormatError("MIDS data too short")
    if reader.tag(0) != b"RIFF" or reader.tag(8) != b"MIDS" or reader.tag(12) != b"fmt ":
        raise MdsFormatError("not a RIFF MIDS stream")
    if reader.u32(4) > file_size - 8:
        raise MdsFormatError("RIFF size exceeds the data")
    if file_size - 12 < 8:
        raise MdsFormatError("MIDS data too short")
    fmt_size = reader.u32(16)
    if fmt_size < 12 or fmt_size > file_size - 12:
        raise MdsFormatError("bad fmt chunk size")

    time_format = reader.u32(20)
    stream_id_used = reader.u32(28) == 0
    data_offset = 20 + fmt_size
    if reader.tag(data_offset) != b"data":
        raise MdsFormatError("missing data chunk")
    if reader.u32(data_offset + 4) < 4:
        raise MdsFormatError("data chunk too small")
    block_count = reader.u32(data_offset + 8)

    events = _read_events(reader, data_offset + 12, block_count, stream_id_used)
    # Events may be stored out of order.
    events.sort(key=lambda item: item[0])

    track = bytearray()
    previous = 0
    for ticks, event in events:
        track += to_variable_len(ticks - previous)
        previous = ticks
        track += _encode_event(event)
    track += b"\x00\xff\x2f\x00"

    header = b"MThd" + struct.pack(">IHHH", 6, 0, 1, time_format & 0xFFFF)
    return header + b"MTrk" + struct.pack(">I", len(track)) + bytes(track)


def load_mds(path: Union[str, "os.PathLike[str]"]) -> bytes:
    """Read a .MDS file and return it converted to MIDI."""
    with open(path, "rb") as stream:
        return mds_to_midi(stream.read())


class MusicPlayer(Protocol):
    """The audio backend that plays loaded music."""

    def play(self, music: Any) -> bool:
        """Start looping ``music``; return False on failure."""

    def halt(self) -> None:
        ...

    def set_volume(self, volume: int) -> None:
        ...


class MusicState:
    """Which track plays, and which resumes when music is switched back on."""

    def __init__(self, tracks: Mapping[MidiTracks, Any], player: MusicPlayer, volume: int) -> None:
        self.tracks: Dict[MidiTracks, Any] = {k: v for k, v in tracks.items() if v is not None}
        self.player = player
        self.volume = volume
        self.set_volume(volume)
        self.active_track = MidiTracks.NONE
        self.next_track = MidiTracks.NONE
        self.is_playing = False

    def set_volume(self, volume: int) -> None:
        self.volume = volume
        self.player.set_volume(volume)

    def _stop_playback(self) -> None:
        if self.active_track is not MidiTracks.NONE:
            self.player.halt()
            self.active_track = MidiTracks.NONE

    def music_play(self) -> None:
        if not self.is_playing:
            self.is_playing = True
            self.play_track(self.next_track, True)
            self.next_track = MidiTracks.NONE

    def music_stop(self) -> None:
        if self.is_playing:
            self.is_playing = False
            self.next_track = self.active_track
            self._stop_playback()

    def music_shutdown(self) -> None:
        self.music_stop()
        self.active_track = MidiTracks.NONE
        self.tracks.clear()

    def play_track(self, track: MidiTracks, replay: bool = False) -> bool:
        """Switch to ``track``; while music is off it is remembered for later."""
        music: Optional[Any] = self.tracks.get(track)
        if music is None or (not replay and self.active_track is track):
            return False

        self._stop_playback()
        if not self.is_playing:
            self.next_track = track
            return False

        if not self.player.play(music):
            self.active_track = MidiTracks.NONE
            return False

        # Some backends only honour the volume during playback.
        self.set_volume(self.volume)
        self.active_track = track
        return True

    def get_active_track(self) -> MidiTracks:
        return self.active_track if self.is_playing else self.next_track