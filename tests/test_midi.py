import struct

import pytest
from hypothesis import given, strategies as st

from cadetcore.midi import (
    MdsFormatError,
    MidiTracks,
    MusicState,
    load_mds,
    mds_to_midi,
    to_variable_len,
)


def decode_vlq(data):
    value = 0
    for i, byte in enumerate(data):
        value = (value << 7) | (byte & 0x7F)
        if not byte & 0x80:
            return value, i + 1
    raise AssertionError("unterminated quantity")


def build_mds(blocks, flags=1, time_format=0x60, fmt_size=12):
    fmt = struct.pack("<III", time_format, 0, flags).ljust(fmt_size, b"\0")
    block_bytes = b""
    for tk_start, events in blocks:
        if flags == 0:
            payload = b"".join(struct.pack("<III", d, 0, e) for d, e in events)
        else:
            payload = b"".join(struct.pack("<II", d, e) for d, e in events)
        block_bytes += struct.pack("<II", tk_start, len(payload)) + payload
    data = b"data" + struct.pack("<II", 4 + len(block_bytes), len(blocks)) + block_bytes
    body = b"MIDS" + b"fmt " + struct.pack("<I", fmt_size) + fmt + data
    return b"RIFF" + struct.pack("<I", len(body)) + body


NOTE_ON = 0x00403C90
PROGRAM = 0x000040C0
TEMPO = 0x0107A120


def test_variable_len_documented_values():
    assert to_variable_len(0) == b"\x00"
    assert to_variable_len(0x80) == b"\x81\x00"


@given(st.integers(min_value=0, max_value=0x0FFFFFFF))
def test_variable_len_round_trip(value):
    encoded = to_variable_len(value)
    decoded, used = decode_vlq(encoded)
    assert decoded == value
    assert used == len(encoded)
    assert len(encoded) <= 4


def test_variable_len_rejects_negative():
    with pytest.raises(ValueError):
        to_variable_len(-1)


def test_mds_to_midi_layout():
    mds = build_mds([(0, [(0, NOTE_ON), (10, PROGRAM), (0, TEMPO)])], time_format=0x60)
    midi = mds_to_midi(mds)
    assert midi[:12] == b"MThd\x00\x00\x00\x06\x00\x00\x00\x01"
    assert midi[12:14] == struct.pack(">H", 0x60)
    assert midi[14:18] == b"MTrk"
    (length,) = struct.unpack(">I", midi[18:22])
    assert length == len(midi) - 22
    track = midi[22:]
    assert track[:4] == b"\x00" + struct.pack("<I", NOTE_ON)[:3]
    assert track[4:7] == b"\x0a" + struct.pack("<I", PROGRAM)[:2]
    assert track[7:14] == b"\x00\xff\x51\x03" + struct.pack(">I", TEMPO)[1:]
    assert track.endswith(b"\x00\xff\x2f\x00")


def test_mds_with_stream_ids_matches_without():
    events = [(0, NOTE_ON), (5, PROGRAM)]
    assert mds_to_midi(build_mds([(0, events)], flags=0)) == mds_to_midi(build_mds([(0, events)], flags=1))


def test_mds_events_are_sorted_across_blocks():
    late = 0x00403D90
    mds = build_mds([(100, [(0, late)]), (0, [(0, NOTE_ON)])])
    track = mds_to_midi(mds)[22:]
    assert track[:4] == b"\x00" + struct.pack("<I", NOTE_ON)[:3]
    delta, used = decode_vlq(track[4:])
    assert delta == 100
    assert track[4 + used : 7 + used] == struct.pack("<I", late)[:3]


def test_empty_stream_has_only_end_of_track():
    midi = mds_to_midi(build_mds([]))
    assert midi[22:] == b"\x00\xff\x2f\x00"


@pytest.mark.parametrize(
    "mutate",
    [
        lambda d: d[:8],
        lambda d: b"RIFX" + d[4:],
        lambda d: d[:8] + b"MIDX" + d[12:],
        lambda d: d[:4] + struct.pack("<I", len(d)) + d[8:],
        lambda d: d[:16] + struct.pack("<I", 8) + d[20:],
        lambda d: d[:32] + b"dat!" + d[36:],
    ],
)
def test_malformed_mds_raises(mutate):
    data = build_mds([(0, [(0, NOTE_ON)])])
    with pytest.raises(MdsFormatError):
        mds_to_midi(mutate(data))


def test_unknown_event_type_raises():
    with pytest.raises(MdsFormatError):
        mds_to_midi(build_mds([(0, [(0, 0x02000000)])]))


def test_load_mds(tmp_path):
    mds = build_mds([(0, [(0, NOTE_ON)])])
    path = tmp_path / "TRACK.MDS"
    path.write_bytes(mds)
    assert load_mds(path) == mds_to_midi(mds)


class FakePlayer:
    def __init__(self, succeed=True):
        self.succeed = succeed
        self.played = []
        self.halts = 0
        self.volumes = []

    def play(self, music):
        self.played.append(music)
        return self.succeed

    def halt(self):
        self.halts += 1

    def set_volume(self, volume):
        self.volumes.append(volume)


def make_state(succeed=True):
    player = FakePlayer(succeed)
    tracks = {MidiTracks.TRACK1: "one", MidiTracks.TRACK2: "two", MidiTracks.TRACK3: None}
    return MusicState(tracks, player, 64), player


def test_play_track_while_stopped_is_deferred():
    state, player = make_state()
    assert state.play_track(MidiTracks.TRACK2, False) is False
    assert state.get_active_track() is MidiTracks.TRACK2
    assert player.played == []


def test_music_play_starts_deferred_track():
    state, player = make_state()
    state.play_track(MidiTracks.TRACK2, False)
    state.music_play()
    assert player.played == ["two"]
    assert state.get_active_track() is MidiTracks.TRACK2
    assert player.volumes[-1] == 64


def test_music_stop_remembers_track():
    state, player = make_state()
    state.music_play()
    assert state.play_track(MidiTracks.TRACK1, False) is True
    state.music_stop()
    assert player.halts == 1
    assert state.active_track is MidiTracks.NONE
    assert state.get_active_track() is MidiTracks.TRACK1


def test_same_track_without_replay_is_ignored():
    state, player = make_state()
    state.music_play()
    state.play_track(MidiTracks.TRACK1, False)
    assert state.play_track(MidiTracks.TRACK1, False) is False
    assert state.play_track(MidiTracks.TRACK1, True) is True
    assert player.played == ["one", "one"]


def test_missing_track_is_not_played():
    state, player = make_state()
    state.music_play()
    assert state.play_track(MidiTracks.TRACK3, False) is False
    assert player.played == []


def test_player_failure_leaves_no_active_track():
    state, _ = make_state(succeed=False)
    state.music_play()
    assert state.play_track(MidiTracks.TRACK1, False) is False
    assert state.get_active_track() is MidiTracks.NONE


def test_set_volume_reaches_player():
    state, player = make_state()
    state.set_volume(10)
    assert state.volume == 10
    assert player.volumes[-1] == 10