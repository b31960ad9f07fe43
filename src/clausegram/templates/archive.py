"""
Template Archives — Deterministic zip bundles of template packages.

Entries are written in path order with a fixed timestamp and fixed
permissions, so the same files always produce the same bytes.
"""

import io
import zipfile

from clausegram.errors import TemplateLoadError


ARCHIVE_TIMESTAMP = (1980, 1, 1, 0, 0, 0)
ARCHIVE_FILE_MODE = 0o644 << 16


def write_archive(files: dict[str, str]) -> bytes:
    """Zip a package's files (path -> text)."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for path in sorted(files):
            info = zipfile.ZipInfo(path, date_time=ARCHIVE_TIMESTAMP)
            info.compress_type = zipfile.ZIP_DEFLATED
            info.external_attr = ARCHIVE_FILE_MODE
            archive.writestr(info, files[path].encode("utf-8"))
    return buffer.getvalue()


def read_archive(data: bytes) -> dict[str, str]:
    """
    Files of an archive (path -> text), directories skipped.

    Raises:
        TemplateLoadError: not a zip archive, or an entry is not UTF-8 text
    """
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            files = {}
            for info in archive.infolist():
                if info.is_dir():
                    continue
                files[info.filename] = archive.read(info).decode("utf-8")
            return files
    except zipfile.BadZipFile as e:
        raise TemplateLoadError(f"Invalid template archive: {e}") from e
    except UnicodeDecodeError as e:
        raise TemplateLoadError(f"Template archive contains a file that is not UTF-8 text: {e}") from e
