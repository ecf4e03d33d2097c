"""8-bit indexed bitmaps, their RGBA pixel buffers and the game palette."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass
from typing import ClassVar, List, Optional, Sequence, Union

_ALPHA_SHIFT = 24
_RED_SHIFT = 16
_GREEN_SHIFT = 8
_BLUE_SHIFT = 0


class BitmapType(enum.IntEnum):
    NONE = 0
    RAW_BITMAP = 1
    DIB_BITMAP = 2
    SPLICED = 3


@dataclass(frozen=True)
class ColorRgba:
    """A packed 32-bit colour: alpha, red, green, blue from high byte to low."""

    color: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "color", self.color & 0xFFFFFFFF)

    @classmethod
    def from_channels(cls, red: int, green: int, blue: int, alpha: int = 255) -> "ColorRgba":
        return cls(
            (alpha & 0xFF) << _ALPHA_SHIFT
            | (red & 0xFF) << _RED_SHIFT
            | (green & 0xFF) << _GREEN_SHIFT
            | (blue & 0xFF) << _BLUE_SHIFT
        )

    @property
    def alpha(self) -> int:
        return (self.color >> _ALPHA_SHIFT) & 0xFF

    @property
    def red(self) -> int:
        return (self.color >> _RED_SHIFT) & 0xFF

    @property
    def green(self) -> int:
        return (self.color >> _GREEN_SHIFT) & 0xFF

    @property
    def blue(self) -> int:
        return (self.color >> _BLUE_SHIFT) & 0xFF

    def with_alpha(self, value: int) -> "ColorRgba":
        """Return the same colour with its alpha channel replaced."""
        return ColorRgba((self.color & ~(0xFF << _ALPHA_SHIFT)) | ((value & 0xFF) << _ALPHA_SHIFT))


BLANK = ColorRgba(0)
BLACK = ColorRgba.from_channels(0, 0, 0, 255)
WHITE = ColorRgba.from_channels(255, 255, 255, 255)
RED = ColorRgba.from_channels(255, 0, 0, 255)
GREEN = ColorRgba.from_channels(0, 255, 0, 255)
BLUE = ColorRgba.from_channels(0, 0, 255, 255)

# Colours taken from the Windows system palette; entry 0 is transparent.
_SYSTEM_COLORS = (
    ColorRgba.from_channels(0, 0, 0, 0),
    ColorRgba.from_channels(0x80, 0, 0, 0xFF),
    ColorRgba.from_channels(0, 0x80, 0, 0xFF),
    ColorRgba.from_channels(0x80, 0x80, 0, 0xFF),
    ColorRgba.from_channels(0, 0, 0x80, 0xFF),
    ColorRgba.from_channels(0x80, 0, 0x80, 0xFF),
    ColorRgba.from_channels(0, 0x80, 0x80, 0xFF),
    ColorRgba.from_channels(0xC0, 0xC0, 0xC0, 0xFF),
    ColorRgba.from_channels(0xC0, 0xDC, 0xC0, 0xFF),
    ColorRgba.from_channels(0xA6, 0xCA, 0xF0, 0xFF),
)


class Bmp8Flags(enum.IntFlag):
    RAW_BMP_UNALIGNED = 1 << 0
    DIB_BITMAP = 1 << 1
    SPLICED = 1 << 2


_BMP8_STRUCT = struct.Struct("<BhhhhiB")


@dataclass
class Bmp8Header:
    """Header preceding an 8-bit bitmap in a resource file."""

    resolution: int
    width: int
    height: int
    x_position: int
    y_position: int
    size: int
    flags: Bmp8Flags

    SIZE: ClassVar[int] = _BMP8_STRUCT.size

    @classmethod
    def from_bytes(cls, data: bytes) -> "Bmp8Header":
        if len(data) < cls.SIZE:
            raise ValueError(f"bitmap header needs {cls.SIZE} bytes, got {len(data)}")
        resolution, width, height, x_pos, y_pos, size, flags = _BMP8_STRUCT.unpack_from(data)
        return cls(resolution, width, height, x_pos, y_pos, size, Bmp8Flags(flags))

    def is_flag_set(self, flag: Bmp8Flags) -> bool:
        return bool(self.flags & flag)


class Bitmap8:
    """An indexed bitmap with an optional RGBA buffer it is rendered into."""

    def __init__(self, width: int, height: int, indexed: bool = True, bmp_buff: bool = True) -> None:
        if width < 0 or height < 0:
            raise ValueError("negative bitmap dimensions")
        self.width = width
        self.height = height
        self.stride = width
        self.indexed_stride = width
        self.bitmap_type = BitmapType.DIB_BITMAP
        self.x_position = 0
        self.y_position = 0
        self.resolution = 0
        self.indexed: Optional[bytearray] = bytearray(height * width) if indexed else None
        self.pixels: Optional[List[ColorRgba]] = [BLANK] * (height * width) if bmp_buff else None

    @classmethod
    def from_header(cls, header: Bmp8Header) -> "Bitmap8":
        """Allocate a bitmap matching a resource-file header."""
        if header.width < 0 or header.height < 0:
            raise ValueError("negative bitmap dimensions")

        if header.is_flag_set(Bmp8Flags.SPLICED):
            bitmap_type = BitmapType.SPLICED
        elif header.is_flag_set(Bmp8Flags.DIB_BITMAP):
            bitmap_type = BitmapType.DIB_BITMAP
        else:
            bitmap_type = BitmapType.RAW_BITMAP

        bmp = cls(header.width, header.height, indexed=False, bmp_buff=True)
        bmp.bitmap_type = bitmap_type
        bmp.x_position = header.x_position
        bmp.y_position = header.y_position
        bmp.resolution = header.resolution

        if bitmap_type is BitmapType.SPLICED:
            size = header.size
        else:
            width = header.width
            if (
                bitmap_type is BitmapType.RAW_BITMAP
                and width % 4
                and not header.is_flag_set(Bmp8Flags.RAW_BMP_UNALIGNED)
            ):
                raise ValueError("wrong raw bitmap align flag")
            if width % 4:
                bmp.indexed_stride = width - width % 4 + 4
            size = header.height * bmp.indexed_stride
            if size != header.size:
                raise ValueError("wrong bitmap size")

        bmp.indexed = bytearray(size)
        return bmp

    def scale_indexed(self, scale_x: float, scale_y: float) -> None:
        """Resize the indexed data by nearest-neighbour sampling."""
        if self.indexed is None:
            raise ValueError("scaling a non-indexed bitmap")

        new_width = int(self.width * scale_x)
        new_height = int(self.height * scale_y)
        if new_width == self.width and new_height == self.height:
            return

        source = self.indexed
        stride = self.indexed_stride
        self.indexed = bytearray(
            source[int(y / scale_y) * stride + int(x / scale_x)]
            for y in range(new_height)
            for x in range(new_width)
        )
        self.stride = self.indexed_stride = self.width = new_width
        self.height = new_height
        self.pixels = [BLANK] * (new_width * new_height)


def _as_colors(plt: Union[bytes, bytearray, memoryview, Sequence[ColorRgba]]) -> List[ColorRgba]:
    if isinstance(plt, (bytes, bytearray, memoryview)):
        raw = bytes(plt)
        raw = raw[: len(raw) // 4 * 4]
        return [ColorRgba(value) for (value,) in struct.iter_unpack("<I", raw)]
    return list(plt)


def make_palette(plt: Union[None, bytes, Sequence[ColorRgba]] = None) -> List[ColorRgba]:
    """Build the 256-entry display palette from a table palette (colours or raw bytes)."""
    palette = [BLANK] * 256
    palette[: len(_SYSTEM_COLORS)] = _SYSTEM_COLORS
    if plt is not None:
        colors = _as_colors(plt)
        if len(colors) < 246:
            raise ValueError(f"palette needs at least 246 entries, got {len(colors)}")
        palette[10:246] = [color.with_alpha(2) for color in colors[10:246]]
    palette[255] = WHITE
    return palette


def _span(buffer: Sequence[ColorRgba], begin: int, count: int) -> slice:
    if count <= 0:
        return slice(0, 0)
    if begin < 0 or begin + count > len(buffer):
        raise IndexError("region lies outside the bitmap")
    return slice(begin, begin + count)


def _require_pixels(bmp: Bitmap8) -> List[ColorRgba]:
    if bmp.pixels is None:
        raise ValueError("bitmap has no pixel buffer")
    return bmp.pixels


def fill_bitmap(bmp: Bitmap8, width: int, height: int, x_off: int, y_off: int, color: ColorRgba) -> None:
    """Fill a rectangle of the pixel buffer with one colour."""
    pixels = _require_pixels(bmp)
    start = bmp.width * y_off + x_off
    for row in range(height):
        region = _span(pixels, start + row * bmp.stride, width)
        pixels[region] = [color] * (region.stop - region.start)


def copy_bitmap(
    dst_bmp: Bitmap8,
    width: int,
    height: int,
    x_off: int,
    y_off: int,
    src_bmp: Bitmap8,
    src_x_off: int,
    src_y_off: int,
) -> None:
    """Copy a rectangle of pixels from one bitmap to another."""
    src = _require_pixels(src_bmp)
    dst = _require_pixels(dst_bmp)
    for row in range(height):
        src_region = _span(src, src_bmp.stride * (src_y_off + row) + src_x_off, width)
        dst_region = _span(dst, dst_bmp.stride * (y_off + row) + x_off, width)
        dst[dst_region] = src[src_region]


def copy_bitmap_w_transparency(
    dst_bmp: Bitmap8,
    width: int,
    height: int,
    x_off: int,
    y_off: int,
    src_bmp: Bitmap8,
    src_x_off: int,
    src_y_off: int,
) -> None:
    """Copy a rectangle of pixels, skipping fully zero source pixels."""
    src = _require_pixels(src_bmp)
    dst = _require_pixels(dst_bmp)
    for row in range(height):
        src_region = _span(src, src_bmp.stride * (src_y_off + row) + src_x_off, width)
        dst_region = _span(dst, dst_bmp.stride * (y_off + row) + x_off, width)
        dst[dst_region] = [
            new if new.color else old for new, old in zip(src[src_region], dst[dst_region])
        ]


def scroll_bitmap_horizontal(bmp: Bitmap8, x_start: int) -> None:
    """Shift every row by ``x_start`` pixels; uncovered pixels keep their old values."""
    pixels = _require_pixels(bmp)
    start_offset = 0 if x_start >= 0 else -x_start
    end_offset = x_start if x_start >= 0 else 0
    length = bmp.width - abs(x_start)
    if length <= 0:
        return
    for row in range(bmp.height):
        base = row * bmp.stride
        pixels[base + end_offset : base + end_offset + length] = pixels[
            base + start_offset : base + start_offset + length
        ]


def apply_palette(bmp: Bitmap8, palette: Sequence[ColorRgba]) -> None:
    """Render the indexed data into the pixel buffer, flipping rows vertically."""
    if bmp.bitmap_type is BitmapType.NONE:
        return
    if bmp.bitmap_type is BitmapType.SPLICED:
        raise ValueError("cannot apply a palette to a spliced bitmap")
    if bmp.indexed is None:
        raise ValueError("cannot apply a palette to a non-indexed bitmap")
    if len(palette) < 256:
        raise ValueError("palette must have 256 entries")
    pixels = _require_pixels(bmp)

    indexed = bmp.indexed
    stride = bmp.indexed_stride
    rendered = [
        palette[index]
        for y in reversed(range(bmp.height))
        for index in indexed[stride * y : stride * y + bmp.width]
    ]
    pixels[: len(rendered)] = rendered