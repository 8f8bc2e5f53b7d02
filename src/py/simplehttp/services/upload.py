import os
import shutil
import sys
from pathlib import Path
from typing import BinaryIO

from ..config import PrefixMap
from ..decorators import on
from ..http.model import HTTPRequest, HTTPRequestError, HTTPResponse
from ..http.multipart import FormFile, parseForm
from ..model import Service
from ..utils.files import create, isWithin, uniqueName
from ..utils.logging import info, warning


class UploadService(Service):
	"""Saves the files of a multipart form in one of the mapped directories,
	then redirects to the page the form was sent from.

	The form has the following fields:

	- `r`, the URI to redirect to
	- `p`, the local directory where files are saved
	- `o`, set to `true` to overwrite existing files, otherwise a new name
	  like `name_<YYYYMMDDhhmmss>_<index>.ext` is picked
	- the files, as parts with a file name (ie. `files[]`)
	"""

	def __init__(self, prefixes: PrefixMap):
		super().__init__()
		self.prefixes: PrefixMap = prefixes

	def isAllowed(self, directory: str) -> bool:
		return any(isWithin(directory, root) for _, root in self.prefixes)

	@on(POST="/upload")
	async def upload(self, request: HTTPRequest) -> HTTPResponse:
		form = await parseForm(request.body.chunks(), request.contentType)
		try:
			uri = form.fields.get("r", "")
			directory = form.fields.get("p", "")
			overwrite = form.fields.get("o") == "true"
			if not uri:
				raise HTTPRequestError("Missing redirect field 'r'", status=400)
			if "\r" in uri or "\n" in uri:
				raise HTTPRequestError("Invalid redirect field 'r'", status=400)
			if not directory:
				raise HTTPRequestError("Missing directory field 'p'", status=400)
			directory = os.path.normpath(directory)
			if not self.isAllowed(directory):
				warning(
					"Upload outside of mapped paths", Peer=request.peer, Path=directory
				)
				raise HTTPRequestError(
					f"Not authorized to upload to: {directory}", status=403
				)
			for part in form.files:
				# The file name may come with a client-side path
				name = os.path.basename(part.filename.replace("\\", "/"))
				if not name:
					continue
				self.save(request, part, Path(directory, name), overwrite=overwrite)
		finally:
			form.close()
		return request.redirect(uri)

	def save(
		self, request: HTTPRequest, part: FormFile, path: Path, *, overwrite: bool
	) -> Path | None:
		"""Saves the part at `path`, or at a unique name derived from it. Save
		failures are logged and skipped."""
		try:
			with self.open(path, overwrite=overwrite) as (f, target):
				info("Saving file", Peer=request.peer, Path=str(target))
				shutil.copyfileobj(part.data, f)
			return target
		except FileExistsError:
			raise HTTPRequestError(
				f"Sorry, can not create unique filename for {path}", status=500
			)
		except OSError as e:
			warning("Save failed", Path=str(path), Error=str(e))
			return None

	def open(self, path: Path, *, overwrite: bool) -> "OpenedFile":
		"""Opens the file at `path` for writing, picking a unique name when the
		file exists and `overwrite` is off. The candidate names are created
		exclusively, so concurrent uploads never share a target."""
		if overwrite:
			return OpenedFile(create(path, overwrite=True), path)
		try:
			return OpenedFile(create(path), path)
		except FileExistsError:
			pass
		for index in range(1, sys.maxsize):
			candidate = Path(uniqueName(path, index))
			try:
				return OpenedFile(create(candidate), candidate)
			except FileExistsError:
				continue
		raise FileExistsError(f"No unique filename available for {path}")


class OpenedFile:
	"""A context manager for a file opened for writing, along with its path."""

	__slots__ = ["file", "path"]

	def __init__(self, file: BinaryIO, path: Path):
		self.file: BinaryIO = file
		self.path: Path = path

	def __enter__(self) -> tuple[BinaryIO, Path]:
		return self.file, self.path

	def __exit__(self, *args: object) -> None:
		self.file.close()


# EOF
