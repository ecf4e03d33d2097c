# cadetcore

The game logic behind a 3D pinball table, as a plain Python library with no
dependencies outside the standard library.

## What is inside

- `cadetcore.maths`: dataclasses for vectors (`Vector2`, `Vector3`,
  `Vector2i`), `Rectangle`, `Circle`, `Ray`, `Line`, `WallPoint` and
  `RampPlane`, plus the routines the table physics is built on:
  `enclosing_box`, `rectangle_clip`, `ray_intersect_line`,
  `ray_intersect_circle`, `line_init`, `normalize_2d`, `basic_collision`,
  `distance_to_flipper`, `find_closest_edge` and the vector helpers.
  A miss is reported as the distance `NO_HIT` (1e9).
- `cadetcore.proj`: `Matrix4` and the `Projection` camera, which turns table
  coordinates into screen pixels (`xform_to_2d`), recovers the z = 0 table
  point behind a pixel (`reverse_xform`) and maps depth to 16 bits
  (`normalize_depth`).
- `cadetcore.gdrv`: `ColorRgba` colours, 8-bit indexed bitmaps (`Bitmap8`,
  `Bmp8Header`), the 256-entry palette (`make_palette`, `apply_palette`) and
  blitting helpers (`fill_bitmap`, `copy_bitmap`,
  `copy_bitmap_w_transparency`, `scroll_bitmap_horizontal`).
- `cadetcore.datfile`: a reader for `PARTOUT(4.0)RESOURCE` game data files.
  `read_records` and `load_records` return the `DatFileHeader` and a list of
  groups, each a list of `Entry` objects; malformed input raises
  `DatFormatError`.
- `cadetcore.settings`: a key/value `Settings` store that reads and writes the
  `[Pinball][Settings]` INI section, the typed `Options` loaded from it, key
  bindings (`GameInput`, `Controls`, `default_controls`) and a
  `ControlRebinder` holding the state of a key rebinding dialog.
- `cadetcore.high_score`: the five-place `HighScoreTable` with its
  verification checksum, and the `HighScoreQueue` of scores waiting for a
  player name.
- `cadetcore.midi`: conversion of RIFF MIDS music into single-track standard
  MIDI files (`mds_to_midi`, `load_mds`, raising `MdsFormatError`), and
  `MusicState`, which tracks the playing and resuming track through any object
  implementing the `MusicPlayer` protocol.
- `cadetcore.game`: data file selection (`select_dat_file` returning a
  `DatSelection`), input matching, end-of-game ranking (`rank_players`,
  `end_game_entries`), text colour parsing and the `FrameClock`, which turns
  frame times into game time, millisecond ticks and the nudge/tilt meter.

## What it does not do

There is no window, renderer, sound output or game loop here, and no command
to start a game. Table components (balls, flippers, bumpers, scoring rules)
are not included: `basic_collision` and `distance_to_flipper` take any object
with the fields they use. Music playback is left to whatever `MusicPlayer` you
pass to `MusicState`.

## Installing

    pip install .

For the test suite:

    pip install ".[test]"
    pytest

## Examples

Clip two rectangles:

    from cadetcore.maths import Rectangle, rectangle_clip

    clipped = rectangle_clip(Rectangle(0, 0, 10, 10), Rectangle(5, 5, 10, 10))
    # Rectangle(x=5, y=5, width=5, height=5); None if they do not overlap

Keep settings between runs:

    from pathlib import Path
    from cadetcore.settings import Options, Settings

    settings = Settings()
    settings.load_ini(Path("settings.ini").read_text())
    options = Options.load(settings, "en")
    options.save(settings)
    Path("settings.ini").write_text(settings.write_all())

Convert a MIDS track to a standard MIDI file:

    from pathlib import Path
    from cadetcore.midi import load_mds

    Path("taba1.mid").write_bytes(load_mds("SOUND/TABA1.MDS"))

Read the table data:

    from cadetcore.datfile import load_records

    header, groups = load_records("PINBALL.DAT", full_tilt_mode=False)
    print(header.app_name, len(groups))

Advance the clock by one frame:

    from cadetcore.game import FrameClock

    clock = FrameClock()
    step = clock.advance(16.7, nudged=False)
    # step.ticks_elapsed == 16; step.tilt is False