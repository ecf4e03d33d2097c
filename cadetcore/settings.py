"""Persistent game settings, player options and control bindings."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field, fields
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

MAX_UPS = 360
MAX_FPS = MAX_UPS
MIN_UPS = 60
MIN_FPS = MIN_UPS
DEF_UPS = 120
DEF_FPS = 60

MAX_SOUND_CHANNELS = 32
MIN_SOUND_CHANNELS = 1
DEF_SOUND_CHANNELS = 8

MAX_VOLUME = 128
MIN_VOLUME = 0
DEF_VOLUME = MAX_VOLUME

SETTINGS_TYPE_NAME = "Pinball"
SETTINGS_ENTRY_NAME = "Settings"

# Keyboard codes.
KEY_SPACE = 32
KEY_PERIOD = 46
KEY_SLASH = 47
KEY_X = 120
KEY_Z = 122
_SCANCODE_MASK = 1 << 30
KEY_F1 = 58 | _SCANCODE_MASK
KEY_F12 = 69 | _SCANCODE_MASK
KEY_UP = 82 | _SCANCODE_MASK

# Mouse buttons.
MOUSE_LEFT = 1
MOUSE_MIDDLE = 2
MOUSE_RIGHT = 3
MOUSE_X1 = 4
MOUSE_X2 = 5

# Game controller buttons.
PAD_A = 0
PAD_START = 6
PAD_LEFT_SHOULDER = 9
PAD_RIGHT_SHOULDER = 10
PAD_DPAD_UP = 11
PAD_DPAD_LEFT = 13
PAD_DPAD_RIGHT = 14

_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1

_INT_PREFIX = re.compile(r"\s*([+-]?\d+)")
_FLOAT_PREFIX = re.compile(
    r"\s*([+-]?(?:\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?|inf(?:inity)?|nan))",
    re.IGNORECASE,
)


class Menu1(enum.IntEnum):
    NEW_GAME = 101
    ABOUT_PINBALL = 102
    HIGH_SCORES = 103
    EXIT = 105
    SOUNDS = 201
    MUSIC = 202
    SOUND_STEREO = 203
    HELP_TOPICS = 301
    LAUNCH_BALL = 401
    PAUSE_RESUME_GAME = 402
    FULL_SCREEN = 403
    DEMO = 404
    SELECT_TABLE = 405
    PLAYER_CONTROLS = 406
    ONE_PLAYER = 408
    TWO_PLAYERS = 409
    THREE_PLAYERS = 410
    FOUR_PLAYERS = 411
    SHOW_MENU = 412
    MAXIMUM_RESOLUTION = 500
    R640X480 = 501
    R800X600 = 502
    R1024X768 = 503
    WINDOW_UNIFORM_SCALE = 600
    WINDOW_LINEAR_FILTER = 601
    WINDOW_INTEGER_SCALE = 602
    PREFER_3DPB_GAME_DATA = 700


class InputType(enum.IntEnum):
    NONE = 0
    KEYBOARD = 1
    MOUSE = 2
    GAME_CONTROLLER = 3


@dataclass(frozen=True)
class GameInput:
    """One binding: a device type and the key or button on it."""

    type: InputType = InputType.NONE
    value: int = 0


def _unbound_row() -> List[GameInput]:
    return [GameInput(), GameInput(), GameInput()]


@dataclass
class Controls:
    """Three bindings for each game control."""

    left_flipper: List[GameInput] = field(default_factory=_unbound_row)
    right_flipper: List[GameInput] = field(default_factory=_unbound_row)
    plunger: List[GameInput] = field(default_factory=_unbound_row)
    left_table_bump: List[GameInput] = field(default_factory=_unbound_row)
    right_table_bump: List[GameInput] = field(default_factory=_unbound_row)
    bottom_table_bump: List[GameInput] = field(default_factory=_unbound_row)

    def copy(self) -> "Controls":
        return Controls(**{f.name: list(getattr(self, f.name)) for f in fields(self)})

    def row(self, name: str) -> List[GameInput]:
        if name not in _ROW_NAMES:
            raise KeyError(f"unknown control {name!r}")
        return getattr(self, name)

    def rows(self) -> Iterator[Tuple[str, List[GameInput]]]:
        for name in _ROW_NAMES:
            yield name, getattr(self, name)


_ROW_NAMES = tuple(f.name for f in fields(Controls))

# Setting-name prefix for each control, in the order they are read and written.
_INPUT_SETTING_NAMES = (
    ("left_flipper", "Left Flipper key"),
    ("right_flipper", "Right Flipper key"),
    ("plunger", "Plunger key"),
    ("left_table_bump", "Left Table Bump key"),
    ("right_table_bump", "Right Table Bump key"),
    ("bottom_table_bump", "Bottom Table Bump key"),
)


def clamp(value, low, high):
    """Limit ``value`` to the range [low, high]."""
    return min(max(value, low), high)


def default_controls() -> Controls:
    """The stock keyboard, mouse and game controller bindings."""
    kb, mouse, pad = InputType.KEYBOARD, InputType.MOUSE, InputType.GAME_CONTROLLER
    return Controls(
        left_flipper=[GameInput(kb, KEY_Z), GameInput(mouse, MOUSE_LEFT), GameInput(pad, PAD_LEFT_SHOULDER)],
        right_flipper=[GameInput(kb, KEY_SLASH), GameInput(mouse, MOUSE_RIGHT), GameInput(pad, PAD_RIGHT_SHOULDER)],
        plunger=[GameInput(kb, KEY_SPACE), GameInput(mouse, MOUSE_MIDDLE), GameInput(pad, PAD_A)],
        left_table_bump=[GameInput(kb, KEY_X), GameInput(mouse, MOUSE_X1), GameInput(pad, PAD_DPAD_LEFT)],
        right_table_bump=[GameInput(kb, KEY_PERIOD), GameInput(mouse, MOUSE_X2), GameInput(pad, PAD_DPAD_RIGHT)],
        bottom_table_bump=[GameInput(kb, KEY_UP), GameInput(mouse, MOUSE_X2 + 1), GameInput(pad, PAD_DPAD_UP)],
    )


def _parse_int(text: str) -> int:
    match = _INT_PREFIX.match(text)
    if not match:
        raise ValueError(f"invalid integer setting {text!r}")
    value = int(match.group(1))
    if not _INT32_MIN <= value <= _INT32_MAX:
        raise ValueError(f"integer setting out of range: {text!r}")
    return value


def _parse_float(text: str) -> float:
    match = _FLOAT_PREFIX.match(text)
    if not match:
        raise ValueError(f"invalid float setting {text!r}")
    return float(match.group(1))


class Settings:
    """A flat key=value store saved in an ini section.

    Reading a missing key stores its default, as the game does.
    """

    def __init__(self, values: Optional[Dict[str, str]] = None) -> None:
        self.values: Dict[str, str] = dict(values or {})
        self.dirty = False

    def __contains__(self, key: object) -> bool:
        return key in self.values

    def _get(self, key: str, default: str) -> str:
        if key not in self.values:
            self.values[key] = default
            self.dirty = True
            return default
        return self.values[key]

    def _set(self, key: str, value: str) -> None:
        self.values[key] = value
        self.dirty = True

    def get_int(self, name: str, default: int) -> int:
        return _parse_int(self._get(name, str(int(default))))

    def set_int(self, name: str, value: int) -> None:
        self._set(name, str(int(value)))

    def get_string(self, name: str, default: str) -> str:
        return self._get(name, default)

    def set_string(self, name: str, value: str) -> None:
        self._set(name, value)

    def get_float(self, name: str, default: float) -> float:
        return _parse_float(self._get(name, f"{default:f}"))

    def set_float(self, name: str, value: float) -> None:
        self._set(name, f"{value:f}")

    def read_line(self, line: str) -> None:
        """Store one ``key=value`` line; lines without '=' are ignored."""
        key, sep, value = line.partition("=")
        if sep:
            self.values[key] = value

    def load_ini(self, text: str) -> None:
        """Read the settings section out of an ini document."""
        active = False
        for raw in text.splitlines():
            line = raw.rstrip("\r")
            if not line or line.startswith(";"):
                continue
            if line.startswith("[") and line.endswith("]"):
                header = line[1:-1]
                type_name, sep, entry_name = header.partition("][")
                active = bool(sep) and type_name == SETTINGS_TYPE_NAME and entry_name == SETTINGS_ENTRY_NAME
                continue
            if active:
                self.read_line(line)

    def write_all(self, type_name: str = SETTINGS_TYPE_NAME) -> str:
        """Render the settings as an ini section, keys in sorted order."""
        lines = [f"[{type_name}][{SETTINGS_ENTRY_NAME}]"]
        lines.extend(f"{key}={value}" for key, value in sorted(self.values.items()))
        return "\n".join(lines) + "\n\n"

    def get_input(self, row_name: str, defaults: Sequence[GameInput]) -> List[GameInput]:
        """Read three bindings, keeping a default wherever the stored one is invalid."""
        result = list(defaults)
        for i in range(3):
            name = f"{row_name} {i}"
            input_type = self.get_int(f"{name} type", -1)
            value = self.get_int(f"{name} input", -1)
            if 0 <= input_type <= InputType.GAME_CONTROLLER and value != -1:
                result[i] = GameInput(InputType(input_type), value)
        return result

    def set_input(self, row_name: str, values: Sequence[GameInput]) -> None:
        for i, game_input in enumerate(values[:3]):
            name = f"{row_name} {i}"
            self.set_int(f"{name} type", int(game_input.type))
            self.set_int(f"{name} input", game_input.value)


_BOOL_SETTINGS = (
    ("sounds", "Sounds", True),
    ("music", "Music", False),
    ("full_screen", "FullScreen", False),
    ("uniform_scaling", "Uniform scaling", True),
    ("linear_filtering", "Linear Filtering", True),
    ("show_menu", "ShowMenu", True),
    ("uncapped_updates_per_second", "Uncapped Updates Per Second", False),
    ("hybrid_sleep", "HybridSleep", False),
    ("prefer_3dpb_game_data", "Prefer 3DPB Game Data", False),
    ("integer_scaling", "Integer Scaling", False),
    ("sound_stereo", "Stereo Sound Effects", False),
    ("debug_overlay", "Debug Overlay", False),
    ("debug_overlay_grid", "Debug Overlay Grid", True),
    ("debug_overlay_all_edges", "Debug Overlay All Edges", True),
    ("debug_overlay_ball_position", "Debug Overlay Ball Position", True),
    ("debug_overlay_ball_edges", "Debug Overlay Ball Edges", True),
    ("debug_overlay_collision_mask", "Debug Overlay Collision Mask", True),
    ("debug_overlay_sprites", "Debug Overlay Sprites", True),
    ("debug_overlay_sounds", "Debug Overlay Sounds", True),
    ("debug_overlay_ball_depth_grid", "Debug Overlay Ball Depth Grid", True),
)


@dataclass
class Options:
    """The player's options as the game uses them."""

    key: Controls = field(default_factory=default_controls)
    key_default: Controls = field(default_factory=default_controls)
    sounds: bool = True
    music: bool = False
    full_screen: bool = False
    players: int = 1
    resolution: int = -1
    uniform_scaling: bool = True
    linear_filtering: bool = True
    frames_per_second: int = DEF_FPS
    updates_per_second: int = DEF_UPS
    show_menu: bool = True
    uncapped_updates_per_second: bool = False
    sound_channels: int = DEF_SOUND_CHANNELS
    hybrid_sleep: bool = False
    prefer_3dpb_game_data: bool = False
    integer_scaling: bool = False
    sound_volume: int = DEF_VOLUME
    music_volume: int = DEF_VOLUME
    sound_stereo: bool = False
    debug_overlay: bool = False
    debug_overlay_grid: bool = True
    debug_overlay_all_edges: bool = True
    debug_overlay_ball_position: bool = True
    debug_overlay_ball_edges: bool = True
    debug_overlay_collision_mask: bool = True
    debug_overlay_sprites: bool = True
    debug_overlay_sounds: bool = True
    debug_overlay_ball_depth_grid: bool = True
    ui_scale: float = 1.0
    language: str = ""
    font_file_name: str = ""

    @classmethod
    def load(cls, settings: Settings, language: str = "") -> "Options":
        """Read options from ``settings``; ``language`` is the fallback language."""
        opts = cls()
        opts.key = default_controls()
        opts.key_default = default_controls()
        for attr, setting_name in _INPUT_SETTING_NAMES:
            setattr(opts.key, attr, settings.get_input(setting_name, getattr(opts.key, attr)))

        for attr, name, default in _BOOL_SETTINGS:
            setattr(opts, attr, bool(settings.get_int(name, default)))
        opts.players = settings.get_int("Players", 1)
        opts.ui_scale = settings.get_float("UI Scale", 1.0)
        opts.resolution = settings.get_int("Screen Resolution", -1)
        opts.frames_per_second = clamp(settings.get_int("Frames Per Second", DEF_FPS), MIN_FPS, MAX_FPS)
        opts.updates_per_second = clamp(settings.get_int("Updates Per Second", DEF_UPS), MIN_UPS, MAX_UPS)
        opts.updates_per_second = max(opts.updates_per_second, opts.frames_per_second)
        opts.sound_channels = clamp(
            settings.get_int("Sound Channels", DEF_SOUND_CHANNELS), MIN_SOUND_CHANNELS, MAX_SOUND_CHANNELS
        )
        opts.sound_volume = clamp(settings.get_int("Sound Volume", DEF_VOLUME), MIN_VOLUME, MAX_VOLUME)
        opts.music_volume = clamp(settings.get_int("Music Volume", DEF_VOLUME), MIN_VOLUME, MAX_VOLUME)
        opts.language = settings.get_string("Language", language)
        opts.font_file_name = settings.get_string("FontFileName", "")
        return opts

    def save(self, settings: Settings) -> None:
        """Write every option into ``settings``."""
        for attr, setting_name in _INPUT_SETTING_NAMES:
            settings.set_input(setting_name, getattr(self.key, attr))
        for attr, name, _default in _BOOL_SETTINGS:
            settings.set_int(name, int(getattr(self, attr)))
        settings.set_int("Players", self.players)
        settings.set_int("Screen Resolution", self.resolution)
        settings.set_float("UI Scale", self.ui_scale)
        settings.set_int("Frames Per Second", self.frames_per_second)
        settings.set_int("Updates Per Second", self.updates_per_second)
        settings.set_int("Sound Channels", self.sound_channels)
        settings.set_int("Sound Volume", self.sound_volume)
        settings.set_int("Music Volume", self.music_volume)
        settings.set_string("Language", self.language)
        settings.set_string("FontFileName", self.font_file_name)


class ControlRebinder:
    """State of the control rebinding dialog."""

    def __init__(self) -> None:
        self.shown = False
        self.controls = Controls()
        self.waiting: Optional[Tuple[str, int]] = None

    @property
    def waiting_for_input(self) -> bool:
        return self.waiting is not None

    def show(self, options: Options) -> None:
        """Open the dialog with a working copy of the current bindings."""
        if not self.shown:
            self.waiting = None
            self.controls = options.key.copy()
            self.shown = True

    def begin_wait(self, row: str, index: int) -> None:
        """Wait for the next input to bind to slot ``index`` of control ``row``."""
        self.controls.row(row)
        if not 0 <= index <= 2:
            raise IndexError(f"binding slot {index} out of range")
        self.waiting = (row, index)

    def clear_row(self, row: str) -> None:
        self.controls.row(row)[:] = _unbound_row()

    def input_down(self, game_input: GameInput) -> bool:
        """Bind ``game_input`` to the awaited slot; return whether it was taken."""
        if self.waiting is None:
            return False
        # Function keys are never bound.
        if game_input.type is InputType.KEYBOARD and KEY_F1 <= game_input.value <= KEY_F12:
            return False
        # Start is reserved for pause.
        if game_input.type is InputType.GAME_CONTROLLER and game_input.value == PAD_START:
            return False
        row, index = self.waiting
        self.controls.row(row)[index] = game_input
        self.waiting = None
        return True

    def accept(self, options: Options) -> None:
        """Apply the edited bindings and close the dialog."""
        options.key = self.controls.copy()
        self.shown = False
        self.waiting = None

    def cancel(self) -> None:
        self.shown = False
        self.waiting = None

    def reset_defaults(self, options: Options) -> None:
        self.controls = options.key_default.copy()
        self.waiting = None