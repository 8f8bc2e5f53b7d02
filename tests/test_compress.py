import zlib

from simplehttp.features.compress import acceptsGZip, compress, isCompressible
from simplehttp.http.model import HTTPResponse

from conftest import bodyOf, makeRequest


def gunzip(data: bytes) -> bytes:
	# The `32` flag detects the header type
	return zlib.decompress(data, wbits=zlib.MAX_WBITS | 32)


def test_accepts_gzip():
	assert acceptsGZip("gzip")
	assert acceptsGZip("deflate, gzip;q=0.5")
	assert acceptsGZip("*")
	assert not acceptsGZip("gzip;q=0")
	assert not acceptsGZip("br, deflate")
	assert not acceptsGZip(None)


def test_is_compressible():
	assert isCompressible("text/html; charset=utf8")
	assert isCompressible("application/json")
	assert not isCompressible("image/png")
	assert not isCompressible(None)


def test_compress_blob():
	req = makeRequest("GET", "/", {"Accept-Encoding": "gzip, deflate"})
	text = "<p>hello</p>" * 100
	res = compress(req, HTTPResponse.Create(text, "text/html; charset=utf8"))
	assert res.getHeader("Content-Encoding") == "gzip"
	assert res.getHeader("Vary") == "Accept-Encoding"
	body = bodyOf(res)
	assert res.getHeader("Content-Length") == str(len(body))
	assert gunzip(body) == text.encode()


def test_compress_file(tmp_path):
	path = tmp_path / "data.json"
	path.write_text('{"a":1}')
	req = makeRequest("GET", "/", {"Accept-Encoding": "gzip"})
	res = compress(req, req.respondFile(path))
	assert res.getHeader("Content-Encoding") == "gzip"
	assert gunzip(bodyOf(res)) == b'{"a":1}'


def test_compress_skips():
	req = makeRequest("GET", "/", {"Accept-Encoding": "gzip"})
	png = compress(req, HTTPResponse.Create(b"\x89PNG", "image/png"))
	assert png.getHeader("Content-Encoding") is None
	missing = compress(req, req.notFound())
	assert missing.getHeader("Content-Encoding") is None
	plain = makeRequest("GET", "/")
	res = compress(plain, HTTPResponse.Create("hello", "text/plain"))
	assert res.getHeader("Content-Encoding") is None
	assert bodyOf(res) == b"hello"


# EOF
