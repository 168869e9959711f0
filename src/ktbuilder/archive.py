"""Jar packaging for compiled class output."""

from __future__ import annotations

import time
import zipfile
from pathlib import Path

MANIFEST_ENTRY = "META-INF/MANIFEST.MF"

# Earliest timestamp a zip entry can carry; used for reproducible jars.
REPRODUCIBLE_DATE_TIME = (1980, 1, 1, 0, 0, 0)


def jar_manifest(*, target_label: str) -> str:
    return (
        "Manifest-Version: 1.0\r\n"
        "Created-By: ktbuilder\r\n"
        f"Target-Label: {target_label}\r\n"
        "\r\n"
    )


def write_jar(
    *,
    classes_dir: Path,
    archive: Path,
    target_label: str,
    reproducible: bool = True,
) -> tuple[str, ...]:
    """Package every file under *classes_dir* into *archive*; return entry names."""
    archive.parent.mkdir(parents=True, exist_ok=True)
    files = sorted(
        (path for path in classes_dir.rglob("*") if path.is_file()),
        key=lambda path: path.relative_to(classes_dir).as_posix(),
    )
    date_time = REPRODUCIBLE_DATE_TIME if reproducible else time.localtime()[:6]

    entries = [MANIFEST_ENTRY]
    manifest = jar_manifest(target_label=target_label).encode("utf-8")
    tmp_path = archive.with_name(f"{archive.name}.tmp")
    with zipfile.ZipFile(tmp_path, "w", compression=zipfile.ZIP_DEFLATED) as jar:
        _write_entry(jar, MANIFEST_ENTRY, manifest, date_time)
        for path in files:
            name = path.relative_to(classes_dir).as_posix()
            _write_entry(jar, name, path.read_bytes(), date_time)
            entries.append(name)
    tmp_path.replace(archive)
    return tuple(entries)


def read_jar_entries(archive: Path) -> tuple[str, ...]:
    with zipfile.ZipFile(archive) as jar:
        return tuple(info.filename for info in jar.infolist())


def _write_entry(
    jar: zipfile.ZipFile,
    name: str,
    payload: bytes,
    date_time: tuple[int, int, int, int, int, int],
) -> None:
    info = zipfile.ZipInfo(name, date_time=date_time)
    info.compress_type = zipfile.ZIP_DEFLATED
    info.external_attr = 0o644 << 16
    jar.writestr(info, payload)
