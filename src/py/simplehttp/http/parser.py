from typing import Iterator, ClassVar, Literal
from urllib.parse import unquote, unquote_plus
from .model import (
	HTTPRequest,
	HTTPRequestLine,
	HTTPHeaders,
	HTTPBodyBlob,
	HTTPProcessingStatus,
	headername,
)

# Headers and request lines are bytes, decoded as ISO-8859-1 per RFC 9110.
HEAD_ENCODING: str = "latin-1"

# The parser yields request lines, headers, full requests (possibly with
# a body remainder still to be read) and processing statuses.
THTTPAtom = HTTPRequestLine | HTTPHeaders | HTTPRequest | HTTPProcessingStatus

EOL: bytes = b"\r\n"


class LineParser:
	"""Accumulates chunks until a CRLF-terminated line is complete. A chunk
	may hold more than one line, so `feed` tells how much of it was used."""

	__slots__ = ["buffer", "scanned"]

	def __init__(self) -> None:
		self.buffer: bytearray = bytearray()
		# Where to resume the search for the end of line
		self.scanned: int = 0

	def reset(self) -> "LineParser":
		self.buffer.clear()
		self.scanned = 0
		return self

	def feed(self, chunk: bytes, start: int = 0) -> tuple[bytes | None, int]:
		"""Returns the line (without its CRLF) once complete, `None` otherwise,
		along with the number of bytes of `chunk` consumed from `start`."""
		before = len(self.buffer)
		self.buffer += chunk[start:]
		end = self.buffer.find(EOL, self.scanned)
		if end == -1:
			# The CR may be the last byte, we look at it again next time
			self.scanned = max(0, len(self.buffer) - 1)
			return None, len(chunk) - start
		line = bytes(self.buffer[:end])
		self.reset()
		return line, end + len(EOL) - before


class MessageParser:
	"""Parses an HTTP request line."""

	__slots__ = ["line", "value"]

	def __init__(self) -> None:
		self.line: LineParser = LineParser()
		self.value: HTTPRequestLine | None = None

	def flush(self) -> HTTPRequestLine | None:
		res = self.value
		self.reset()
		return res

	def reset(self) -> "MessageParser":
		self.line.reset()
		self.value = None
		return self

	def feed(self, chunk: bytes, start: int = 0) -> tuple[bool | None, int]:
		"""Returns `True` when a request line was parsed, `False` when
		the line is malformed and `None` when more data is needed."""
		line, read = self.line.feed(chunk, start)
		if line is None:
			return None, read
		elif not line:
			# Empty lines before a request line are tolerated (RFC 9112 §2.2)
			return None, read
		else:
			parts = line.decode(HEAD_ENCODING).split()
			if len(parts) != 3 or not parts[2].startswith("HTTP/"):
				return False, read
			self.value = HTTPRequestLine(parts[0].upper(), parts[1], parts[2])
			return True, read

	def __str__(self) -> str:
		return f"MessageParser({self.value})"


class HeadersParser:
	__slots__ = ["headers", "contentType", "contentLength", "line"]

	def __init__(self) -> None:
		self.line: LineParser = LineParser()
		self.headers: dict[str, str] = {}
		self.contentType: str | None = None
		self.contentLength: int | None = None

	def flush(self) -> HTTPHeaders:
		res = HTTPHeaders(self.headers, self.contentType, self.contentLength)
		self.reset()
		return res

	def reset(self) -> "HeadersParser":
		self.line.reset()
		self.headers = {}
		self.contentType = None
		self.contentLength = None
		return self

	def feed(
		self, chunk: bytes, start: int = 0
	) -> tuple[str | Literal[False] | None, int]:
		"""Feeds data from chunk, starting at `start` offset. Returns
		a value and the next start offset. When the value is `None`, no
		header has been extracted, when the value is `False` it's an empty
		line, otherwise it's the name of the header that was added."""
		line, read = self.line.feed(chunk, start)
		if line is None:
			return None, read
		elif not line:
			# An empty line denotes the end of headers
			return False, read
		else:
			ln: str = line.decode(HEAD_ENCODING)
			i = ln.find(":")
			if i == -1:
				return None, read
			h = ln[:i].lower().strip()
			v = ln[i + 1 :].strip()
			if h == "content-length":
				try:
					self.contentLength = max(0, int(v))
				except ValueError:
					self.contentLength = None
			elif h == "content-type":
				self.contentType = v
			n: str = headername(h)
			self.headers[n] = v
			return n, read

	def __str__(self) -> str:
		return f"HeadersParser({self.headers})"


class HTTPParser:
	"""A stateful HTTP request parser. Requests are yielded as soon as their
	headers are parsed, with the part of the body that was available in the
	fed chunk. The remainder of the body is to be read from the connection
	(see `HTTPRequest.body`)."""

	METHOD_HAS_BODY: ClassVar[set[str]] = {"POST", "PUT", "PATCH", "DELETE"}

	def __init__(self, peer: str | None = None) -> None:
		self.peer: str | None = peer
		self.message: MessageParser = MessageParser()
		self.headers: HeadersParser = HeadersParser()
		self.parser: MessageParser | HeadersParser = self.message
		self.requestLine: HTTPRequestLine | None = None
		# Bytes read for the current request line and headers
		self.headSize: int = 0

	def reset(self) -> "HTTPParser":
		self.message.reset()
		self.headers.reset()
		self.parser = self.message
		self.requestLine = None
		self.headSize = 0
		return self

	def feed(self, chunk: bytes) -> Iterator[THTTPAtom]:
		size: int = len(chunk)
		offset: int = 0
		while offset < size:
			# The underlying parsers keep a buffer until they are flushed, so
			# a partially read chunk doesn't need to be re-fed.
			ln, read = self.parser.feed(chunk, offset)
			offset += read
			self.headSize += read
			if ln is None:
				continue
			elif self.parser is self.message:
				if ln is False:
					yield HTTPProcessingStatus.BadFormat
					self.reset()
					return
				line = self.message.flush()
				self.requestLine = line
				if line is not None:
					yield line
					self.parser = self.headers
			elif ln is False:
				headers = self.headers.flush()
				yield headers
				line = self.requestLine
				self.parser = self.message.reset()
				if line is None:
					yield HTTPProcessingStatus.BadFormat
					continue
				expected: int = (
					(headers.contentLength or 0)
					if line.method in self.METHOD_HAS_BODY
					or headers.contentLength
					else 0
				)
				self.headSize = 0
				payload: bytes = chunk[offset : offset + expected]
				offset += len(payload)
				yield self.request(
					line,
					headers,
					HTTPBodyBlob(payload, len(payload), expected - len(payload)),
				)

	def request(
		self, line: HTTPRequestLine, headers: HTTPHeaders, body: HTTPBodyBlob
	) -> HTTPRequest:
		path, query = parseTarget(line.uri)
		return HTTPRequest(
			method=line.method,
			path=path,
			query=query,
			headers=headers,
			body=body,
			protocol=line.protocol,
			uri=line.uri,
			peer=self.peer,
		)


def parseTarget(uri: str) -> tuple[str, dict[str, str]]:
	"""Splits a request target into its decoded path and query."""
	if uri.startswith("http://") or uri.startswith("https://"):
		# Absolute form, ie. `http://host/path`
		i = uri.find("/", uri.find("//") + 2)
		uri = uri[i:] if i != -1 else "/"
	p: list[str] = uri.split("?", 1)
	return unquote(p[0]) or "/", parseQuery(p[1]) if len(p) > 1 else {}


def parseQuery(text: str) -> dict[str, str]:
	res: dict[str, str] = {}
	for item in text.split("&"):
		if not item:
			continue
		kv = item.split("=", 1)
		if len(kv) == 1:
			res[unquote_plus(item)] = ""
		else:
			res[unquote_plus(kv[0])] = unquote_plus(kv[1])
	return res


# EOF
