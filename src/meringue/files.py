from __future__ import annotations

import os
import sys
import zipfile
from pathlib import Path
from typing import Iterable

from loguru import logger

from .errors import ConfigurationError, StagingError

MANIFEST_NAME = "META-INF/MANIFEST.MF"
MANIFEST_LINE_LIMIT = 72  # bytes per line, including the leading continuation space
WINDOWS_MAX_PATH = 260


def ensure_directory(path: Path) -> Path:
    """
    Create `path` (and missing parents) unless it already is a directory.
    Safe to call repeatedly on state left behind by an earlier campaign.

    :raises ConfigurationError: if the path exists but is not a directory
    :raises StagingError: if the directory cannot be created
    """
    path = Path(path)
    if path.is_dir():
        return path
    if path.exists():
        raise ConfigurationError(f"Path exists and is not a directory: {path}")
    try:
        path.mkdir(parents=True, exist_ok=True)
    except FileExistsError as e:
        # lost a race against something that created a file here
        raise ConfigurationError(f"Path exists and is not a directory: {path}", e)
    except OSError as e:
        raise StagingError(f"Failed to create directory: {path}", e)
    logger.debug("Created directory {}", path)
    return path


def escape_to_platform_path(path: str) -> str:
    """Long Windows paths need the extended-length prefix; elsewhere paths are left alone."""
    if sys.platform == "win32" and len(path) >= WINDOWS_MAX_PATH and not path.startswith("\\\\?\\"):
        return "\\\\?\\" + path
    return path


def build_class_path(*elements: Path) -> str:
    """Join class path elements into a single os.pathsep separated string."""
    return os.pathsep.join(escape_to_platform_path(str(Path(e).absolute())) for e in elements)


def element_uri(element: Path) -> str:
    """
    URI used for a class path element in a manifest.
    Directories must end with a slash or the JVM treats them as JAR files.
    """
    uri = Path(element).absolute().as_uri()
    if Path(element).is_dir() and not uri.endswith("/"):
        uri += "/"
    return uri


def manifest_text(class_path_elements: Iterable[Path]) -> bytes:
    # set semantics: duplicates collapse, ordering is not significant
    uris = sorted({element_uri(Path(e)) for e in class_path_elements})
    attributes = [
        ("Manifest-Version", "1.0"),
        ("Created-By", "meringue"),
        ("Class-Path", " ".join(uris)),
    ]
    out = bytearray()
    for name, value in attributes:
        out += _wrap_manifest_line(f"{name}: {value}".encode("utf-8"))
    out += b"\r\n"
    return bytes(out)


def _wrap_manifest_line(line: bytes) -> bytes:
    # The first physical line carries 72 bytes, continuation lines start
    # with a space and carry 71 more.
    chunks = [line[:MANIFEST_LINE_LIMIT]]
    rest = line[MANIFEST_LINE_LIMIT:]
    while rest:
        chunks.append(b" " + rest[: MANIFEST_LINE_LIMIT - 1])
        rest = rest[MANIFEST_LINE_LIMIT - 1:]
    return b"".join(chunk + b"\r\n" for chunk in chunks)


def read_manifest_class_path(jar: Path) -> list[str]:
    """Read back the Class-Path attribute of a manifest JAR as a list of URIs."""
    with zipfile.ZipFile(jar) as zf:
        raw = zf.read(MANIFEST_NAME).decode("utf-8")
    # undo line continuations before splitting attributes
    unfolded = raw.replace("\r\n ", "").replace("\n ", "")
    for line in unfolded.splitlines():
        name, _, value = line.partition(": ")
        if name == "Class-Path":
            return value.split(" ") if value else []
    return []


def build_manifest_jar(class_path_elements: Iterable[Path], jar: Path) -> Path:
    """
    Write a JAR whose manifest Class-Path lists every element, so the test JVM
    can be launched with a single class path entry regardless of how many
    elements the build resolved. Any existing file at `jar` is replaced.

    :raises StagingError: if an element cannot be resolved or the JAR cannot be written
    """
    jar = Path(jar)
    try:
        content = manifest_text(class_path_elements)
    except (OSError, ValueError) as e:
        raise StagingError("Failed to resolve class path element", e)
    try:
        with zipfile.ZipFile(jar, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            zf.writestr("META-INF/", b"")
            zf.writestr(MANIFEST_NAME, content)
    except OSError as e:
        raise StagingError(f"Failed to write manifest JAR: {jar}", e)
    logger.debug("Wrote manifest JAR {}", jar)
    return jar


def java_home_to_java_exec(java_home: Path) -> Path:
    name = "java.exe" if sys.platform == "win32" else "java"
    return Path(java_home) / "bin" / name


def ends_with_java_path(path: Path) -> bool:
    """True if the path looks like <home>/bin/java (or java.exe)."""
    path = Path(path).absolute()
    return path.name in ("java", "java.exe") and path.parent.name == "bin"


def is_java_executable(path: Path) -> bool:
    return ends_with_java_path(path) and Path(path).is_file()
