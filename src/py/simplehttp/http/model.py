import os.path
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import (
	Any,
	AsyncIterator,
	NamedTuple,
	TypeAlias,
)

from ..utils.logging import warning
from ..utils.primitives import TPrimitive
from .api import ResponseFactory
from .status import HTTP_STATUS

# Text bodies are encoded as UTF-8
DEFAULT_ENCODING: str = "utf8"

# -----------------------------------------------------------------------------
#
# HELPERS
#
# -----------------------------------------------------------------------------

# Header names that don't follow the `Kebab-Case` convention
HEADER_NAMES: dict[str, str] = {
	"www-authenticate": "WWW-Authenticate",
	"content-md5": "Content-MD5",
	"etag": "ETag",
	"te": "TE",
}


def headername(name: str, *, headers: dict[str, str] = HEADER_NAMES) -> str:
	"""Normalizes the header name as `Kebab-Case`. Only the exceptions
	table is looked up: client header names are never stored."""
	return headers.get(name.lower()) or "-".join(
		_.capitalize() for _ in name.split("-")
	)


# -----------------------------------------------------------------------------
#
# DATA MODEL
#
# -----------------------------------------------------------------------------


class HTTPRequestLine(NamedTuple):
	"""Represents a request status line"""

	method: str
	uri: str
	protocol: str


class HTTPHeaders(NamedTuple):
	"""Wraps HTTP headers, keeping key information for response/request processing."""

	headers: dict[str, str]
	contentType: str | None = None
	contentLength: int | None = None


class HTTPProcessingStatus(Enum):
	"""Internal parser/processor state management"""

	BadFormat = 12


# -----------------------------------------------------------------------------
#
# ERRORS
#
# -----------------------------------------------------------------------------


class HTTPRequestError(Exception):
	"""To be raised by handlers to generate an error response, 500 by default."""

	def __init__(
		self,
		message: str,
		status: int | None = None,
		contentType: str | None = None,
		payload: TPrimitive | None = None,
	):
		super().__init__(message)
		self.message: str = message
		self.status: int | None = status
		self.contentType: str | None = contentType
		self.payload: TPrimitive | bytes | None = payload


# -----------------------------------------------------------------------------
#
# BODY
#
# -----------------------------------------------------------------------------


BODY_READER_TIMEOUT: float = 10.0
BODY_CHUNK_SIZE: int = 256_000


class HTTPBodyReader(ABC):
	"""A base class for being able to read a request body, typically from a
	socket."""

	async def read(
		self, timeout: float = BODY_READER_TIMEOUT, size: int | None = None
	) -> bytes | None:
		return await self._read(timeout=timeout, size=size)

	@abstractmethod
	async def _read(
		self, timeout: float = BODY_READER_TIMEOUT, size: int | None = None
	) -> bytes | None: ...


class HTTPBodyBlob(NamedTuple):
	"""Represents a part (or a whole) body as bytes, with the number of
	bytes that are still to be read from the connection."""

	payload: bytes = b""
	length: int = 0
	remaining: int = 0

	@staticmethod
	def FromBytes(data: bytes) -> "HTTPBodyBlob":
		return HTTPBodyBlob(payload=data, length=len(data))

	async def load(self) -> bytes:
		return self.payload

	async def chunks(self) -> AsyncIterator[bytes]:
		if self.payload:
			yield self.payload


class HTTPBodyIO:
	"""Represents a body that is partially available, the rest being loaded
	from a reader."""

	__slots__ = ["reader", "read", "remaining", "existing"]

	def __init__(
		self,
		reader: HTTPBodyReader,
		expected: int,
		existing: bytes = b"",
	):
		self.reader: HTTPBodyReader = reader
		self.read: int = 0
		self.remaining: int = expected
		self.existing: bytes = existing

	async def _read(self, size: int = BODY_CHUNK_SIZE) -> bytes | None:
		"""Reads the next available bytes, up to `size`."""
		if self.existing and self.read == 0:
			self.read += len(self.existing)
			return self.existing
		elif self.remaining > 0:
			try:
				payload = await self.reader.read(size=min(size, self.remaining))
			except TimeoutError:
				warning(
					"Request body loading timed out",
					Remaining=self.remaining,
					Read=self.read,
				)
				return None
			if payload:
				n = len(payload)
				self.read += n
				self.remaining -= n
			return payload or None
		else:
			return None

	async def load(self) -> bytes:
		"""Fully loads the body."""
		res = bytearray()
		while chunk := await self._read():
			res += chunk
		return bytes(res)

	async def chunks(self) -> AsyncIterator[bytes]:
		while chunk := await self._read():
			yield chunk


class HTTPBodyFile(NamedTuple):
	"""Represents an HTTP body from a file, or a slice of it."""

	path: Path
	offset: int = 0
	size: int | None = None

	@property
	def length(self) -> int:
		return (
			self.size
			if self.size is not None
			else self.path.stat().st_size - self.offset
		)

	def read(self) -> bytes:
		with open(self.path, "rb") as f:
			f.seek(self.offset)
			return f.read(self.length)


# The different types of bodies that are managed
THTTPBody: TypeAlias = HTTPBodyBlob | HTTPBodyFile


class HTTPBodyWriter(ABC):
	"""A generic writer for bodies, implementations write bytes to the
	underlying transport."""

	__slots__ = ["shouldClose"]

	def __init__(self) -> None:
		self.shouldClose: bool = False

	async def write(self, body: THTTPBody | bytes | None) -> bool:
		"""Writes the given type of body."""
		if isinstance(body, bytes):
			return await self._writeBytes(body)
		elif isinstance(body, HTTPBodyBlob):
			return await self._writeBytes(body.payload)
		elif isinstance(body, HTTPBodyFile):
			return await self._writeFile(body)
		elif body is None:
			return True
		else:
			raise ValueError(f"Unsupported body format: {body}")

	async def _writeFile(self, body: HTTPBodyFile, size: int = 64_000) -> bool:
		left: int = body.length
		with open(body.path, "rb") as f:
			f.seek(body.offset)
			while left > 0 and (chunk := f.read(min(size, left))):
				left -= len(chunk)
				await self._writeBytes(chunk, left > 0)
		return True

	@abstractmethod
	async def _writeBytes(self, chunk: bytes, more: bool = False) -> bool: ...


# -----------------------------------------------------------------------------
#
# REQUESTS
#
# -----------------------------------------------------------------------------


class HTTPRequest(ResponseFactory["HTTPResponse"]):
	"""Represents an HTTP requests, which also acts as a factory for
	responses."""

	__slots__ = [
		"protocol",
		"method",
		"path",
		"uri",
		"query",
		"peer",
		"_headers",
		"_body",
		"_reader",
	]

	def __init__(
		self,
		method: str,
		path: str,
		query: dict[str, str] | None,
		headers: HTTPHeaders,
		body: HTTPBodyIO | HTTPBodyBlob | None = None,
		protocol: str = "HTTP/1.1",
		*,
		uri: str | None = None,
		peer: str | None = None,
	):
		super().__init__()
		self.method: str = method
		self.path: str = path
		# The request target as sent by the client, before decoding
		self.uri: str = path if uri is None else uri
		self.query: dict[str, str] | None = query
		self.protocol: str = protocol
		self.peer: str | None = peer
		self._headers: HTTPHeaders = headers
		self._body: HTTPBodyIO | HTTPBodyBlob | None = body
		self._reader: HTTPBodyReader | None = None

	@property
	def headers(self) -> dict[str, str]:
		return self._headers.headers

	def header(self, name: str) -> str | None:
		return self._headers.headers.get(headername(name))

	@property
	def contentType(self) -> str | None:
		return self._headers.contentType

	@property
	def contentLength(self) -> int | None:
		return self._headers.contentLength

	@property
	def body(self) -> HTTPBodyIO | HTTPBodyBlob:
		if self._body is None:
			self._body = HTTPBodyBlob()
		elif isinstance(self._body, HTTPBodyBlob) and self._body.remaining:
			if not self._reader:
				raise RuntimeError("Request has no reader, can't read body")
			self._body = HTTPBodyIO(
				self._reader, expected=self._body.remaining, existing=self._body.payload
			)
		return self._body

	@property
	def hasRemaining(self) -> bool:
		"""Tells if part of the body was not read from the connection."""
		return bool(self._body and self._body.remaining)

	def respond(
		self,
		content: Any = None,
		contentType: str | None = None,
		contentLength: int | None = None,
		status: int = 200,
		headers: dict[str, str] | None = None,
		message: str | None = None,
	) -> "HTTPResponse":
		return HTTPResponse.Create(
			status=status,
			message=message,
			content=content,
			contentType=contentType,
			contentLength=contentLength,
			protocol=self.protocol,
			headers=headers,
		)

	def __str__(self) -> str:
		return f"Request({self.method} {self.uri} {self.headers})"


# -----------------------------------------------------------------------------
#
# RESPONSE
#
# -----------------------------------------------------------------------------


class HTTPResponse:
	"""An HTTP response."""

	@staticmethod
	def Create(
		content: Any = None,
		contentType: str | None = None,
		contentLength: int | None = None,
		headers: dict[str, str] | None = None,
		status: int = 200,
		message: str | None = None,
		protocol: str = "HTTP/1.1",
	) -> "HTTPResponse":
		"""Factory method to create HTTP response objects."""
		payload: bytes | None = None
		body: THTTPBody | None = None
		res_headers: dict[str, str] = {
			headername(k): v for k, v in (headers or {}).items()
		}
		if content is None:
			pass
		elif isinstance(content, str):
			payload = content.encode(DEFAULT_ENCODING)
		elif isinstance(content, bytes):
			payload = content
		elif isinstance(content, HTTPBodyFile):
			body = content
			contentLength = content.length
		elif isinstance(content, Path):
			body = HTTPBodyFile(content.absolute())
			contentLength = os.path.getsize(body.path)
		else:
			raise ValueError(f"Unsupported content {type(content)}:{content}")
		# If we have a payload then it's a Blob response
		if payload is not None:
			contentLength = len(payload)
			body = HTTPBodyBlob(payload, contentLength)
		if contentType is not None:
			res_headers["Content-Type"] = contentType
		if contentLength is not None:
			res_headers["Content-Length"] = str(contentLength)
		elif body is None:
			res_headers.setdefault("Content-Length", "0")
		return HTTPResponse(
			status=status,
			message=message or HTTP_STATUS.get(status, "Unknown status"),
			headers=HTTPHeaders(
				res_headers,
				contentType=res_headers.get("Content-Type"),
				contentLength=contentLength,
			),
			body=body,
			protocol=protocol,
		)

	__slots__ = [
		"protocol",
		"status",
		"message",
		"headers",
		"body",
		"shouldClose",
	]

	def __init__(
		self,
		protocol: str,
		status: int,
		message: str | None,
		headers: HTTPHeaders,
		body: THTTPBody | None = None,
		shouldClose: bool = False,
	):
		self.protocol: str = protocol
		self.status: int = status
		self.message: str | None = message
		self.headers: HTTPHeaders = headers
		self.body: THTTPBody | None = body
		self.shouldClose: bool = shouldClose

	@property
	def contentType(self) -> str | None:
		return self.getHeader("Content-Type")

	def getHeader(self, name: str) -> str | None:
		return self.headers.headers.get(headername(name))

	def setHeader(self, name: str, value: str | int | None) -> "HTTPResponse":
		if value is None:
			self.headers.headers.pop(headername(name), None)
		else:
			self.headers.headers[headername(name)] = str(value)
		return self

	def setHeaders(self, headers: dict[str, str | int | None]) -> "HTTPResponse":
		for k, v in headers.items():
			self.setHeader(k, v)
		return self

	def head(self) -> bytes:
		"""Serializes the head as a payload."""
		message: str = self.message or HTTP_STATUS.get(self.status, "Unknown status")
		lines: list[str] = [f"{self.protocol} {self.status} {message}"]
		lines += [f"{headername(k)}: {v}" for k, v in self.headers.headers.items()]
		lines.append("")
		lines.append("")
		# NOTE: Header values are ASCII, other characters must be encoded
		# by the producer (ie. in `Location`).
		return "\r\n".join(lines).encode("latin-1", errors="replace")

	def __str__(self) -> str:
		return f"Response({self.protocol} {self.status} {self.message} {self.headers} {self.body})"


# EOF
