"""
File helpers for converting ``.json`` and ``.bson`` files on disk.
"""

from enum import Enum
from pathlib import Path
from typing import Optional, Union

from ..converter import bson_to_json, json_to_bson, validate_json
from ..core.reader import decode
from ..security.exceptions import ConversionError
from .config import ConversionConfig, ConversionLimits

PathLike = Union[str, Path]


class FileError(ConversionError):
    """A file cannot be converted: unknown type, too large or unreadable."""


class FileType(Enum):
    """Supported input formats and the format each converts to."""

    JSON = ".json"
    BSON = ".bson"

    @property
    def suffix(self) -> str:
        return self.value

    @property
    def target(self) -> "FileType":
        return FileType.BSON if self is FileType.JSON else FileType.JSON


def detect_file_type(name: PathLike) -> Optional[FileType]:
    """File type from the name's last extension, ignoring case."""
    suffix = Path(name).suffix.lower()
    for file_type in FileType:
        if file_type.suffix == suffix:
            return file_type
    return None


def output_filename(name: PathLike, target: FileType) -> str:
    """Swap the last extension for the target's (``data.bson`` -> ``data.json``)."""
    path = Path(name)
    stem = path.stem if path.suffix else path.name
    return f"{stem}{target.suffix}"


def _format_megabytes(size: int) -> str:
    return f"{size / (1024 * 1024):g}MB"


def read_input(path: PathLike, limits: Optional[ConversionLimits] = None) -> bytes:
    """Read a file, refusing it before reading if it exceeds the size limit."""
    limits = limits or ConversionLimits()
    path = Path(path)
    try:
        size = path.stat().st_size
        if size > limits.max_input_size:
            raise FileError(
                f"File size exceeds {_format_megabytes(limits.max_input_size)} limit"
            )
        return path.read_bytes()
    except OSError as exc:
        raise FileError(f"Cannot read {path}: {exc.strerror or exc}") from exc


def _require_type(path: Path) -> FileType:
    file_type = detect_file_type(path)
    if file_type is None:
        raise FileError("Unsupported file type. Please upload a .json or .bson file.")
    return file_type


def convert_file(
    path: PathLike,
    output_dir: Optional[PathLike] = None,
    config: Optional[ConversionConfig] = None,
) -> Path:
    """Convert one file and write the result next to it or into ``output_dir``.

    Returns:
        Path of the written file.

    Raises:
        FileError: If the file type is unsupported, too large or unreadable.
        MalformedBson, InvalidJson, UnsupportedValue: If conversion fails.
    """
    config = config or ConversionConfig()
    path = Path(path)
    file_type = _require_type(path)
    data = read_input(path, config.limits)

    if file_type is FileType.BSON:
        result = bson_to_json(data, config)
        payload = result.unwrap().encode("utf-8")
    else:
        payload = json_to_bson(data, config).unwrap()

    target_dir = Path(output_dir) if output_dir is not None else path.parent
    target = target_dir / output_filename(path.name, file_type.target)
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        target.write_bytes(payload)
    except OSError as exc:
        raise FileError(f"Cannot write {target}: {exc.strerror or exc}") from exc

    config.get_logger(__name__).info("Converted %s -> %s", path, target)
    return target


def validate_file(path: PathLike, config: Optional[ConversionConfig] = None) -> FileType:
    """Check a ``.json`` file's grammar or a ``.bson`` file's structure.

    Returns:
        The detected file type.
    """
    config = config or ConversionConfig()
    path = Path(path)
    file_type = _require_type(path)
    data = read_input(path, config.limits)

    if file_type is FileType.BSON:
        decode(data, config)
    else:
        validate_json(data, config).unwrap()
    return file_type
