import tempfile
from typing import AsyncIterator, BinaryIO, Iterator, NamedTuple, TypeAlias

from .model import HTTPRequestError, headername

# Parts bigger than this are spooled to disk
SPOOL_MAX_SIZE: int = 1024 * 1024

# -----------------------------------------------------------------------------
#
# HEADER VALUES
#
# -----------------------------------------------------------------------------


def parseHeaderValue(value: str) -> tuple[str, dict[str, str]]:
	"""Parses a header value with parameters, so that
	`form-data; name="file"; filename="a.txt"` returns
	`("form-data", {"name": "file", "filename": "a.txt"})`."""
	params: dict[str, str] = {}
	fields = iterFields(value)
	main = next(fields, "").strip()
	for field in fields:
		k, _, v = field.partition("=")
		v = v.strip()
		if len(v) >= 2 and v[0] == '"' and v[-1] == '"':
			v = v[1:-1].replace('\\"', '"').replace("\\\\", "\\")
		params[k.strip().lower()] = v
	return main, params


def iterFields(value: str) -> Iterator[str]:
	"""Splits on `;`, except within quoted strings."""
	start = 0
	quoted = False
	i = 0
	while i < len(value):
		c = value[i]
		if c == "\\" and quoted:
			i += 1
		elif c == '"':
			quoted = not quoted
		elif c == ";" and not quoted:
			yield value[start:i]
			start = i + 1
		i += 1
	if start < len(value):
		yield value[start:]


def boundary(contentType: str | None) -> bytes | None:
	"""Returns the boundary of a `multipart/form-data` content type."""
	if not contentType:
		return None
	kind, params = parseHeaderValue(contentType)
	if kind.lower() not in ("multipart/form-data", "multipart/mixed"):
		return None
	value = params.get("boundary")
	return value.encode("latin-1") if value else None


# -----------------------------------------------------------------------------
#
# PARSER
#
# -----------------------------------------------------------------------------


class MultipartHeaders(NamedTuple):
	"""Marks the start of a new part."""

	headers: dict[str, str]


class MultipartData(NamedTuple):
	data: bytes


class MultipartEnd(NamedTuple):
	"""Marks the end of the last part."""

	pass


MultipartOutput: TypeAlias = MultipartHeaders | MultipartData | MultipartEnd


class MultipartParser:
	"""A push parser for multipart bodies: chunks are fed as they arrive from
	the connection, and the parser yields part headers and part data, never
	holding more than a chunk plus a boundary in memory."""

	__slots__ = ["boundary", "delimiter", "buffer", "state"]

	def __init__(self, boundary: bytes):
		self.boundary: bytes = b"--" + boundary
		# Part data ends with CRLF, followed by the boundary
		self.delimiter: bytes = b"\r\n" + self.boundary
		self.buffer: bytearray = bytearray()
		# One of `preamble`, `headers`, `data` or `end`
		self.state: str = "preamble"

	@property
	def isComplete(self) -> bool:
		return self.state == "end"

	def feed(self, chunk: bytes) -> Iterator[MultipartOutput]:
		self.buffer += chunk
		while True:
			if self.state == "preamble":
				i = self.buffer.find(self.boundary)
				if i == -1:
					# Keep enough to match a boundary split across chunks
					del self.buffer[: max(0, len(self.buffer) - len(self.boundary))]
					return
				k = i + len(self.boundary)
				if self.buffer[k : k + 2] == b"--":
					# Closing delimiter
					self.buffer.clear()
					self.state = "end"
					yield MultipartEnd()
					return
				j = self.buffer.find(b"\r\n", k)
				if j == -1:
					return
				del self.buffer[: j + 2]
				self.state = "headers"
			elif self.state == "headers":
				if self.buffer.startswith(b"\r\n"):
					# A part without headers
					del self.buffer[:2]
					self.state = "data"
					yield MultipartHeaders({})
					continue
				i = self.buffer.find(b"\r\n\r\n")
				if i == -1:
					return
				yield MultipartHeaders(self.parseHeaders(bytes(self.buffer[:i])))
				del self.buffer[: i + 4]
				self.state = "data"
			elif self.state == "data":
				i = self.buffer.find(self.delimiter)
				if i == -1:
					# The tail might be the start of a delimiter
					n = len(self.buffer) - len(self.delimiter)
					if n > 0:
						yield MultipartData(bytes(self.buffer[:n]))
						del self.buffer[:n]
					return
				if i:
					yield MultipartData(bytes(self.buffer[:i]))
				# We rewind to the boundary, the preamble state then
				# finds the next part or the closing delimiter.
				del self.buffer[: i + 2]
				self.state = "preamble"
			else:
				# Epilogue is ignored
				self.buffer.clear()
				return

	@staticmethod
	def parseHeaders(data: bytes) -> dict[str, str]:
		headers: dict[str, str] = {}
		for line in data.split(b"\r\n"):
			# NOTE: Browsers send UTF-8 file names in part headers
			ln = line.decode("utf8", errors="replace")
			k, sep, v = ln.partition(":")
			if sep:
				headers[headername(k.strip())] = v.strip()
		return headers


# -----------------------------------------------------------------------------
#
# FORMS
#
# -----------------------------------------------------------------------------


class FormFile(NamedTuple):
	"""A file part of a form, its content spooled in `data`."""

	name: str
	filename: str
	contentType: str | None
	data: BinaryIO


class FormData(NamedTuple):
	fields: dict[str, str]
	files: list[FormFile]

	def close(self) -> None:
		for _ in self.files:
			_.data.close()


async def parseForm(
	chunks: AsyncIterator[bytes], contentType: str | None
) -> FormData:
	"""Parses a `multipart/form-data` body from the given chunks. Text fields
	are decoded as UTF-8, file parts are spooled to temporary files."""
	separator = boundary(contentType)
	if not separator:
		raise HTTPRequestError("Expected multipart/form-data body", status=400)
	parser = MultipartParser(separator)
	fields: dict[str, str] = {}
	files: list[FormFile] = []
	name: str | None = None
	value: bytearray | None = None
	spool: BinaryIO | None = None

	def flush() -> None:
		if name is not None and value is not None:
			fields.setdefault(name, value.decode("utf8", errors="replace"))

	try:
		async for chunk in chunks:
			for atom in parser.feed(chunk):
				if isinstance(atom, MultipartHeaders):
					flush()
					_, params = parseHeaderValue(
						atom.headers.get("Content-Disposition", "")
					)
					name = params.get("name", "")
					if "filename" in params:
						value = None
						spool = tempfile.SpooledTemporaryFile(
							max_size=SPOOL_MAX_SIZE
						)
						files.append(
							FormFile(
								name,
								params["filename"],
								atom.headers.get("Content-Type"),
								spool,
							)
						)
					else:
						value = bytearray()
						spool = None
				elif isinstance(atom, MultipartData):
					if spool is not None:
						spool.write(atom.data)
					elif value is not None:
						value += atom.data
				elif isinstance(atom, MultipartEnd):
					flush()
					name, value, spool = None, None, None
		if not parser.isComplete:
			raise HTTPRequestError("Incomplete multipart body", status=400)
	except BaseException:
		for _ in files:
			_.data.close()
		raise
	for _ in files:
		_.data.seek(0)
	return FormData(fields, files)


# EOF
