from simplehttp.http.model import (
	HTTPHeaders,
	HTTPProcessingStatus,
	HTTPRequest,
	HTTPRequestLine,
	HEADER_NAMES,
	headername,
)
from simplehttp.http.parser import HTTPParser, parseQuery, parseTarget

REQUEST = (
	b"GET /index.html?q=a+b&x=%2F HTTP/1.1\r\n"
	b"Host: localhost\r\n"
	b"accept-encoding: gzip\r\n"
	b"\r\n"
)

POST = (
	b"POST /upload HTTP/1.1\r\n"
	b"Host: localhost\r\n"
	b"Content-Type: text/plain\r\n"
	b"Content-Length: 5\r\n"
	b"\r\n"
	b"hello"
)


def requests(parser: HTTPParser, *chunks: bytes) -> list[HTTPRequest]:
	return [
		atom
		for chunk in chunks
		for atom in parser.feed(chunk)
		if isinstance(atom, HTTPRequest)
	]


def test_parse_request():
	atoms = list(HTTPParser(peer="10.0.0.1").feed(REQUEST))
	assert atoms[0] == HTTPRequestLine("GET", "/index.html?q=a+b&x=%2F", "HTTP/1.1")
	assert isinstance(atoms[1], HTTPHeaders)
	req = atoms[2]
	assert isinstance(req, HTTPRequest)
	assert req.method == "GET"
	assert req.path == "/index.html"
	assert req.uri == "/index.html?q=a+b&x=%2F"
	assert req.query == {"q": "a b", "x": "/"}
	assert req.peer == "10.0.0.1"
	assert req.header("Accept-Encoding") == "gzip"
	assert req.header("accept-encoding") == "gzip"
	assert not req.hasRemaining


def test_parse_split_chunks():
	# Byte by byte, so that line endings are split too
	parser = HTTPParser()
	res = requests(parser, *(POST[i : i + 1] for i in range(len(POST) - 5)))
	assert len(res) == 1
	req = res[0]
	assert req.contentLength == 5
	assert req.contentType == "text/plain"
	# The body was not part of the fed chunks
	assert req.hasRemaining


def test_parse_body():
	(req,) = requests(HTTPParser(), POST)
	assert not req.hasRemaining
	assert req.body.payload == b"hello"


def test_parse_partial_body():
	(req,) = requests(HTTPParser(), POST[:-2])
	assert req.hasRemaining
	assert req._body is not None
	assert req._body.payload == b"hel"
	assert req._body.remaining == 2


def test_parse_pipelined():
	parser = HTTPParser()
	res = requests(parser, POST + REQUEST + POST)
	assert [_.method for _ in res] == ["POST", "GET", "POST"]
	assert res[0].body.payload == b"hello"
	assert res[2].body.payload == b"hello"
	assert parser.headSize == 0


def test_parse_tolerates_leading_empty_lines():
	(req,) = requests(HTTPParser(), b"\r\n" + REQUEST)
	assert req.path == "/index.html"


def test_parse_malformed():
	atoms = list(HTTPParser().feed(b"NOT A REQUEST LINE\r\n\r\n"))
	assert atoms == [HTTPProcessingStatus.BadFormat]
	atoms = list(HTTPParser().feed(b"GET /\r\n\r\n"))
	assert atoms == [HTTPProcessingStatus.BadFormat]


def test_head_size():
	parser = HTTPParser()
	list(parser.feed(b"GET / HTTP/1.1\r\nHost: x"))
	assert parser.headSize == len(b"GET / HTTP/1.1\r\nHost: x")


def test_parse_target():
	assert parseTarget("/a%20b/c") == ("/a b/c", {})
	assert parseTarget("") == ("/", {})
	assert parseTarget("http://example.com/x?y=1") == ("/x", {"y": "1"})
	assert parseTarget("https://example.com") == ("/", {})


def test_parse_query():
	assert parseQuery("a=1&b&&c=x%26y") == {"a": "1", "b": "", "c": "x&y"}


def test_header_names_are_not_retained():
	before = dict(HEADER_NAMES)
	parser = HTTPParser()
	chunks = [f"GET / HTTP/1.1\r\nX-Junk-{i}: 1\r\n\r\n".encode() for i in range(500)]
	reqs = requests(parser, *chunks)
	assert len(reqs) == 500
	assert reqs[42].header("x-junk-42") == "1"
	assert HEADER_NAMES == before
	assert headername("www-authenticate") == "WWW-Authenticate"
	assert headername("content-TYPE") == "Content-Type"


# EOF
