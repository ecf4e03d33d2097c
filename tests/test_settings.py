import pytest
from hypothesis import given, strategies as st

from cadetcore.settings import (
    DEF_FPS,
    DEF_VOLUME,
    KEY_F1,
    KEY_F12,
    MAX_FPS,
    MAX_SOUND_CHANNELS,
    MIN_VOLUME,
    PAD_START,
    ControlRebinder,
    Controls,
    GameInput,
    InputType,
    Options,
    Settings,
    clamp,
    default_controls,
)


def test_clamp():
    assert clamp(5, 1, 10) == 5
    assert clamp(-3, 1, 10) == 1
    assert clamp(30, 1, 10) == 10


def test_get_int_stores_default():
    s = Settings()
    assert s.get_int("Players", 3) == 3
    assert s.values["Players"] == "3"
    assert s.dirty


def test_get_int_parses_leading_digits():
    s = Settings({"a": "12abc", "b": "  -7"})
    assert s.get_int("a", 0) == 12
    assert s.get_int("b", 0) == -7


def test_get_int_invalid_raises():
    s = Settings({"a": "abc"})
    with pytest.raises(ValueError):
        s.get_int("a", 0)


def test_set_float_uses_fixed_format():
    s = Settings()
    s.set_float("UI Scale", 1.0)
    assert s.values["UI Scale"] == "1.000000"
    assert s.get_float("UI Scale", 2.0) == 1.0


@given(st.integers(min_value=-(2**31), max_value=2**31 - 1))
def test_int_round_trip(value):
    s = Settings()
    s.set_int("x", value)
    assert s.get_int("x", 0) == value


@given(st.text(alphabet=st.characters(blacklist_characters="\r\n", blacklist_categories=("Cs",))))
def test_string_round_trip(value):
    s = Settings()
    s.set_string("name", value)
    assert s.get_string("name", "other") == value


def test_read_line_splits_on_first_equals():
    s = Settings()
    s.read_line("key=a=b")
    s.read_line("no separator")
    assert s.values == {"key": "a=b"}


def test_write_all_and_load_ini_round_trip():
    s = Settings({"b": "2", "a": "1"})
    text = s.write_all("Pinball")
    assert text == "[Pinball][Settings]\na=1\nb=2\n\n"
    other = Settings()
    other.load_ini("[Window][Main]\nPos=1,2\n\n" + text)
    assert other.values == {"a": "1", "b": "2"}
    assert not other.dirty


def test_load_ini_ignores_other_sections():
    s = Settings()
    s.load_ini("[Other][Settings]\nx=1\n")
    assert s.values == {}


def test_get_input_keeps_defaults_for_invalid_entries():
    s = Settings(
        {
            "Row 0 type": "2",
            "Row 0 input": "7",
            "Row 1 type": "-1",
            "Row 1 input": "9",
            "Row 2 type": "5",
            "Row 2 input": "9",
        }
    )
    defaults = default_controls().plunger
    result = s.get_input("Row", defaults)
    assert result[0] == GameInput(InputType.MOUSE, 7)
    assert result[1:] == defaults[1:]


def test_set_input_get_input_round_trip():
    s = Settings()
    values = [GameInput(InputType.KEYBOARD, 97), GameInput(), GameInput(InputType.GAME_CONTROLLER, 3)]
    s.set_input("Left Flipper key", values)
    assert s.get_input("Left Flipper key", default_controls().left_flipper) == values


def test_options_defaults_from_empty_settings():
    s = Settings()
    opts = Options.load(s, language="en")
    assert opts.frames_per_second == DEF_FPS
    assert opts.sound_volume == DEF_VOLUME
    assert opts.language == "en"
    assert opts.key == default_controls()
    assert s.values["Language"] == "en"


def test_options_clamping():
    s = Settings(
        {
            "Frames Per Second": "1000",
            "Updates Per Second": "100",
            "Sound Channels": "500",
            "Music Volume": "-4",
        }
    )
    opts = Options.load(s)
    assert opts.frames_per_second == MAX_FPS
    assert opts.updates_per_second == MAX_FPS
    assert opts.sound_channels == MAX_SOUND_CHANNELS
    assert opts.music_volume == MIN_VOLUME


def test_updates_not_below_frames():
    s = Settings({"Frames Per Second": "200", "Updates Per Second": "100"})
    opts = Options.load(s)
    assert opts.updates_per_second == 200


def test_options_save_load_round_trip():
    opts = Options.load(Settings(), language="en")
    opts.music = True
    opts.players = 4
    opts.ui_scale = 1.5
    opts.font_file_name = "font.ttf"
    opts.key.plunger[0] = GameInput(InputType.KEYBOARD, 98)
    s = Settings()
    opts.save(s)
    loaded = Options.load(s, language="de")
    assert loaded == opts


def test_rebinder_binds_and_accepts():
    opts = Options.load(Settings())
    rebinder = ControlRebinder()
    rebinder.show(opts)
    rebinder.begin_wait("plunger", 1)
    assert rebinder.waiting_for_input
    new = GameInput(InputType.KEYBOARD, 98)
    assert rebinder.input_down(new) is True
    assert not rebinder.waiting_for_input
    assert opts.key.plunger[1] != new
    rebinder.accept(opts)
    assert opts.key.plunger[1] == new
    assert rebinder.shown is False


def test_rebinder_skips_reserved_inputs():
    opts = Options.load(Settings())
    rebinder = ControlRebinder()
    rebinder.show(opts)
    rebinder.begin_wait("left_flipper", 0)
    assert rebinder.input_down(GameInput(InputType.KEYBOARD, KEY_F1)) is False
    assert rebinder.input_down(GameInput(InputType.KEYBOARD, KEY_F12)) is False
    assert rebinder.input_down(GameInput(InputType.GAME_CONTROLLER, PAD_START)) is False
    assert rebinder.waiting == ("left_flipper", 0)
    assert rebinder.controls.left_flipper == opts.key.left_flipper


def test_rebinder_without_wait_ignores_input():
    rebinder = ControlRebinder()
    assert rebinder.input_down(GameInput(InputType.KEYBOARD, 98)) is False


def test_rebinder_reset_defaults_and_show_keeps_state():
    opts = Options.load(Settings())
    opts.key.plunger[0] = GameInput(InputType.KEYBOARD, 98)
    rebinder = ControlRebinder()
    rebinder.show(opts)
    rebinder.clear_row("plunger")
    rebinder.show(opts)
    assert rebinder.controls.plunger == Controls().plunger
    rebinder.begin_wait("plunger", 2)
    rebinder.reset_defaults(opts)
    assert rebinder.controls == default_controls()
    assert rebinder.waiting is None


def test_rebinder_rejects_bad_slots():
    rebinder = ControlRebinder()
    with pytest.raises(KeyError):
        rebinder.begin_wait("nonsense", 0)
    with pytest.raises(IndexError):
        rebinder.begin_wait("plunger", 3)