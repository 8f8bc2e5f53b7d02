import mimetypes
import os
import stat
import time
from pathlib import Path
from typing import BinaryIO, NamedTuple

mimetypes.init()

# NOTE: These take precedence over `mimetypes`, as the platform's MIME
# database may be missing or wrong (ie. `.js` as `text/plain` on Windows).
MIME_TYPES: dict[str, str] = {
	".css": "text/css; charset=utf-8",
	".gif": "image/gif",
	".htm": "text/html; charset=utf-8",
	".html": "text/html; charset=utf-8",
	".jpg": "image/jpeg",
	".js": "application/javascript",
	".wasm": "application/wasm",
	".pdf": "application/pdf",
	".png": "image/png",
	".svg": "image/svg+xml",
	".xml": "text/xml; charset=utf-8",
}

DEFAULT_CONTENT_TYPE: str = "application/octet-stream"

# Timestamp format used to disambiguate uploaded file names
UNIQUE_TIMESTAMP: str = "%Y%m%d%H%M%S"


def mimeType(path: Path | str) -> str | None:
	"""Returns the content type from the builtin table for the path's extension,
	or `None` when the extension is not in the table."""
	return MIME_TYPES.get(os.path.splitext(str(path))[1].lower())


def contentType(path: Path | str) -> str:
	"""Guesses the content type from the given path"""
	return (
		res
		if (res := mimeType(path))
		else mimetypes.guess_type(str(path))[0] or DEFAULT_CONTENT_TYPE
	)


def isFile(path: Path | str) -> bool:
	"""Tells if the path exists and is not a directory. `os.stat` raises
	a `ValueError` for paths with a NUL byte, these are not files either."""
	try:
		return not stat.S_ISDIR(os.stat(path).st_mode)
	except (OSError, ValueError):
		return False


def isDir(path: Path | str) -> bool:
	try:
		return stat.S_ISDIR(os.stat(path).st_mode)
	except (OSError, ValueError):
		return False


def isWithin(path: Path | str, root: Path | str) -> bool:
	"""Tells if the normalized `path` is `root` or one of its descendants."""
	p = Path(os.path.normpath(path))
	r = Path(os.path.normpath(root))
	return p.parts[: len(r.parts)] == r.parts


class FileEntry(NamedTuple):
	"""A directory entry, as shown in listings."""

	name: str
	isDir: bool
	mode: str
	size: int
	updatedAt: float

	@staticmethod
	def FromPath(path: Path) -> "FileEntry":
		# NOTE: We follow symlinks, a broken link is reported with its own stats.
		try:
			stats = path.stat()
		except OSError:
			stats = path.lstat()
		return FileEntry(
			name=path.name,
			isDir=stat.S_ISDIR(stats.st_mode),
			mode=stat.filemode(stats.st_mode),
			size=stats.st_size,
			updatedAt=stats.st_mtime,
		)

	@property
	def modified(self) -> str:
		return time.strftime("%Y-%m-%d %H:%M:%S %z", time.localtime(self.updatedAt))


def listdir(path: Path) -> list[FileEntry]:
	"""Lists the entries of the directory at `path`, sorted by name. Raises
	`OSError` when the directory can't be read."""
	return [FileEntry.FromPath(_) for _ in sorted(path.iterdir(), key=lambda _: _.name)]


def uniqueName(path: Path | str, index: int, at: float | None = None) -> str:
	"""Returns the `index`-th alternative name for `path`, like
	`dir/note_20240101120000_1.txt` for `dir/note.txt`."""
	base, ext = os.path.splitext(str(path))
	stamp = time.strftime(
		UNIQUE_TIMESTAMP, time.localtime(time.time() if at is None else at)
	)
	return f"{base}_{stamp}_{index}{ext}"


def create(path: Path | str, *, overwrite: bool = False) -> BinaryIO:
	"""Opens `path` for writing. Unless `overwrite` is set, the file must
	not exist (raises `FileExistsError`)."""
	return open(path, "wb" if overwrite else "xb")


# EOF
