import re
from abc import ABC, abstractmethod
from base64 import b64encode
from pathlib import Path
from typing import Any, Generic, Iterator, NamedTuple, TypeVar

from ..utils.files import contentType as getContentType
from ..utils.primitives import json
from .status import HTTP_STATUS

T = TypeVar("T")

# -----------------------------------------------------------------------------
#
# RANGES
#
# -----------------------------------------------------------------------------

RE_RANGE = re.compile(r"^\s*bytes\s*=\s*(\d*)\s*-\s*(\d*)\s*$")


class ByteRange(NamedTuple):
	"""An inclusive byte range `[start, end]` within a resource."""

	start: int
	end: int

	@property
	def length(self) -> int:
		return self.end - self.start + 1


def parseRange(value: str | None, size: int) -> ByteRange | bool | None:
	"""Parses a single-range `Range` header against a resource of `size` bytes.
	Returns `None` when the header is absent, malformed or multi-range (the whole
	resource is then served), and `False` when the range can't be satisfied."""
	if not value:
		return None
	match = RE_RANGE.match(value)
	if not match:
		return None
	start, end = match.group(1), match.group(2)
	if not start and not end:
		return None
	elif not start:
		# Suffix range, ie. `bytes=-500` for the last 500 bytes
		n = int(end)
		return ByteRange(max(0, size - n), size - 1) if n and size else False
	elif int(start) >= size:
		return False
	else:
		last = int(end) if end else size - 1
		if last < int(start):
			return None
		return ByteRange(int(start), min(last, size - 1))


# -----------------------------------------------------------------------------
#
# API
#
# -----------------------------------------------------------------------------

# --
# == HTTP Request Response API
#
# Defines the high level API functions (orthogonal to the underlying model)
# to manipulate requests/responses.


class ResponseFactory(ABC, Generic[T]):
	@abstractmethod
	def respond(
		self,
		content: Any = None,
		contentType: str | None = None,
		contentLength: int | None = None,
		status: int = 200,
		headers: dict[str, str] | None = None,
		message: str | None = None,
	) -> T: ...

	def empty(
		self,
		status: int = 200,
		headers: dict[str, str] | None = None,
	) -> T:
		return self.respond(
			content=None,
			contentType=None,
			status=status,
			headers=headers,
		)

	def error(
		self,
		status: int,
		content: str | None = None,
		contentType: str = "text/plain; charset=utf-8",
		headers: dict[str, str] | None = None,
	) -> T:
		message = HTTP_STATUS.get(status, "Server Error")
		return self.respond(
			content=message if content is None else content,
			contentType=contentType,
			status=status,
			message=message,
			headers=headers,
		)

	def unauthorized(self, realm: str = "Restricted") -> T:
		return self.error(401, headers={"WWW-Authenticate": f"Basic realm={realm}"})

	def notFound(self, content: str | None = None, *, status: int = 404) -> T:
		return self.error(status, content=content)

	def badRequest(self, content: str | None = None) -> T:
		return self.error(400, content=content)

	def fail(
		self,
		content: str | None = None,
		*,
		status: int = 500,
	) -> T:
		return self.error(status, content=content)

	def redirect(self, url: str, permanent: bool = False) -> T:
		# SEE: https://developer.mozilla.org/en-US/docs/Web/HTTP/Redirections
		return self.empty(status=301 if permanent else 302, headers={"Location": url})

	def returns(
		self,
		value: Any,
		headers: dict[str, str] | None = None,
		*,
		status: int = 200,
		contentType: str = "application/json; charset=utf8",
	) -> T:
		if isinstance(value, bytes):
			try:
				value = value.decode("ascii")
			except UnicodeDecodeError:
				value = f"base64:{b64encode(value).decode('ascii')}"
		payload: bytes = json(value)
		return self.respond(
			payload,
			contentType=contentType,
			contentLength=len(payload),
			headers=headers,
			status=status,
		)

	def respondText(
		self,
		content: str | bytes,
		contentType: str = "text/plain; charset=utf-8",
		status: int = 200,
	) -> T:
		return self.respond(content=content, contentType=contentType, status=status)

	def respondHTML(self, html: str | bytes | Iterator[str], status: int = 200) -> T:
		return self.respond(
			content=html if isinstance(html, (str, bytes)) else "".join(html),
			contentType="text/html; charset=utf8",
			status=status,
		)

	def respondFile(
		self,
		path: Path | str,
		headers: dict[str, str] | None = None,
		status: int = 200,
		contentType: str | None = None,
		*,
		range: str | None = None,
	) -> T:
		"""Responds with the file at `path`, or with the slice of it
		requested by the `range` header value (`206`/`416`)."""
		# NOTE: Imported here as the model depends on this module
		from .model import HTTPBodyFile

		p: Path = path if isinstance(path, Path) else Path(path)
		size: int = p.stat().st_size
		res_headers: dict[str, str] = {
			"Content-Type": contentType or getContentType(p),
			"Accept-Ranges": "bytes",
		} | (headers or {})
		selection = parseRange(range, size) if status == 200 else None
		if selection is False:
			return self.error(
				416, headers=res_headers | {"Content-Range": f"bytes */{size}"}
			)
		elif isinstance(selection, ByteRange):
			return self.respond(
				content=HTTPBodyFile(p.absolute(), selection.start, selection.length),
				status=206,
				headers=res_headers
				| {
					"Content-Range": f"bytes {selection.start}-{selection.end}/{size}"
				},
			)
		else:
			return self.respond(
				content=HTTPBodyFile(p.absolute(), 0, size),
				status=status,
				headers=res_headers,
			)


# EOF
