"""Reader for the game's partout resource (.DAT) files."""

from __future__ import annotations

import enum
import os
import struct
from dataclasses import dataclass
from typing import BinaryIO, ClassVar, List, Optional, Tuple, Union

from .gdrv import Bitmap8, Bmp8Header

SIGNATURE = "PARTOUT(4.0)RESOURCE"


class DatFormatError(ValueError):
    """The resource file is malformed."""


class FieldType(enum.IntEnum):
    SHORT_VALUE = 0
    BITMAP_8BIT = 1
    UNKNOWN2 = 2
    GROUP_NAME = 3
    UNKNOWN4 = 4
    PALETTE = 5
    UNKNOWN6 = 6
    UNKNOWN7 = 7
    UNKNOWN8 = 8
    STRING = 9
    SHORT_ARRAY = 10
    FLOAT_ARRAY = 11
    BITMAP_16BIT = 12
    UNKNOWN13 = 13


# Fixed field sizes by type; -1 means the size is stored in the file.
_FIELD_SIZE = (2, -1, 2, -1, -1, -1, -1, -1, -1, -1, -1, -1, -1, 0)


def _c_string(raw: bytes) -> str:
    return raw.split(b"\0", 1)[0].decode("latin-1")


_HEADER_STRUCT = struct.Struct("<21s50s100siHiH")
_ZMAP_STRUCT = struct.Struct("<hhhihh")


@dataclass
class DatFileHeader:
    file_signature: str
    app_name: str
    description: str
    file_size: int
    number_of_groups: int
    size_of_body: int
    unknown: int

    SIZE: ClassVar[int] = _HEADER_STRUCT.size

    @classmethod
    def from_bytes(cls, data: bytes) -> "DatFileHeader":
        if len(data) < cls.SIZE:
            raise DatFormatError(f"file header needs {cls.SIZE} bytes, got {len(data)}")
        sig, app, desc, file_size, groups, body, unknown = _HEADER_STRUCT.unpack_from(data)
        return cls(_c_string(sig), _c_string(app), _c_string(desc), file_size, groups, body, unknown)


@dataclass
class ZMapHeader:
    width: int
    height: int
    stride: int
    unknown0: int = 0
    unknown1_0: int = 0
    unknown1_1: int = 0

    SIZE: ClassVar[int] = _ZMAP_STRUCT.size

    @classmethod
    def from_bytes(cls, data: bytes) -> "ZMapHeader":
        if len(data) < cls.SIZE:
            raise DatFormatError(f"z-map header needs {cls.SIZE} bytes, got {len(data)}")
        return cls(*_ZMAP_STRUCT.unpack_from(data))


@dataclass
class Entry:
    """One field of a group.

    Bitmaps are parsed into ``bitmap``; z-maps keep their header in ``zmap``
    and their 16-bit depth values, little-endian, in ``data``.
    """

    entry_type: FieldType
    field_size: int
    data: bytes = b""
    bitmap: Optional[Bitmap8] = None
    zmap: Optional[ZMapHeader] = None
    zmap_resolution: int = 0


def _read_exact(stream: BinaryIO, count: int) -> bytes:
    if count < 0:
        raise DatFormatError("negative field length")
    data = stream.read(count)
    if len(data) < count:
        raise DatFormatError("unexpected end of file")
    return data


def _read_u8(stream: BinaryIO) -> int:
    return _read_exact(stream, 1)[0]


def _read_u32(stream: BinaryIO) -> int:
    return struct.unpack("<I", _read_exact(stream, 4))[0]


def _read_bitmap8(stream: BinaryIO, field_size: int) -> Entry:
    header = Bmp8Header.from_bytes(_read_exact(stream, Bmp8Header.SIZE))
    if header.size + Bmp8Header.SIZE != field_size:
        raise DatFormatError("wrong bitmap field size")
    if header.resolution > 2:
        raise DatFormatError("bitmap resolution out of bounds")
    try:
        bmp = Bitmap8.from_header(header)
    except ValueError as exc:
        raise DatFormatError(str(exc)) from exc
    bmp.indexed[:] = _read_exact(stream, header.size)
    return Entry(FieldType.BITMAP_8BIT, field_size, bitmap=bmp)


def _read_zmap(stream: BinaryIO, field_size: int, full_tilt_mode: bool) -> Entry:
    resolution = 0
    size = field_size
    if full_tilt_mode:
        # Full Tilt stores a resolution byte before the z-map header.
        resolution = _read_u8(stream)
        size -= 1
        if resolution == 0xFF:
            resolution = 0
        if resolution > 2:
            raise DatFormatError("z-map resolution out of bounds")

    header = ZMapHeader.from_bytes(_read_exact(stream, ZMapHeader.SIZE))
    length = size - ZMapHeader.SIZE
    if header.stride * header.height * 2 == length:
        data = _read_exact(stream, length)
        return Entry(FieldType.BITMAP_16BIT, field_size, data=data, zmap=header, zmap_resolution=resolution)

    # Some files carry zeroed z-map headers; their payload is skipped.
    _read_exact(stream, length)
    return Entry(FieldType.BITMAP_16BIT, field_size, zmap=ZMapHeader(0, 0, 0))


def _read_entry(stream: BinaryIO, full_tilt_mode: bool) -> Entry:
    raw_type = _read_u8(stream)
    try:
        entry_type = FieldType(raw_type)
    except ValueError as exc:
        raise DatFormatError(f"unknown field type {raw_type}") from exc

    fixed_size = _FIELD_SIZE[entry_type]
    field_size = fixed_size if fixed_size >= 0 else _read_u32(stream)

    if entry_type is FieldType.BITMAP_8BIT:
        return _read_bitmap8(stream, field_size)
    if entry_type is FieldType.BITMAP_16BIT:
        return _read_zmap(stream, field_size, full_tilt_mode)
    return Entry(entry_type, field_size, data=_read_exact(stream, field_size))


def read_records(
    stream: BinaryIO, full_tilt_mode: bool = False
) -> Tuple[DatFileHeader, List[List[Entry]]]:
    """Parse a resource file into its header and a list of groups of entries."""
    header = DatFileHeader.from_bytes(_read_exact(stream, DatFileHeader.SIZE))
    if header.file_signature != SIGNATURE:
        raise DatFormatError("not a partout resource file")

    _read_exact(stream, header.unknown)

    groups = []
    for _ in range(header.number_of_groups):
        entry_count = _read_u8(stream)
        groups.append([_read_entry(stream, full_tilt_mode) for _ in range(entry_count)])
    return header, groups


def load_records(
    path: Union[str, "os.PathLike[str]"], full_tilt_mode: bool = False
) -> Tuple[DatFileHeader, List[List[Entry]]]:
    """Read a resource file from disk."""
    with open(path, "rb") as stream:
        return read_records(stream, full_tilt_mode)