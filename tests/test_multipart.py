import asyncio
from typing import AsyncIterator

import pytest

from simplehttp.http.model import HTTPRequestError
from simplehttp.http.multipart import (
	MultipartData,
	MultipartEnd,
	MultipartHeaders,
	MultipartParser,
	boundary,
	parseForm,
	parseHeaderValue,
)

BODY = (
	b"preamble\r\n"
	b"--XyZ\r\n"
	b'Content-Disposition: form-data; name="r"\r\n'
	b"\r\n"
	b"/docs/\r\n"
	b"--XyZ\r\n"
	b'Content-Disposition: form-data; name="files[]"; filename="a.txt"\r\n'
	b"Content-Type: text/plain\r\n"
	b"\r\n"
	b"line one\r\n--Xy-\r\n"
	b"--XyZ--\r\n"
	b"epilogue"
)

CONTENT_TYPE = "multipart/form-data; boundary=XyZ"


async def iterChunks(data: bytes, size: int) -> AsyncIterator[bytes]:
	for i in range(0, len(data), size):
		yield data[i : i + size]


def parse(data: bytes, size: int):
	return asyncio.run(parseForm(iterChunks(data, size), CONTENT_TYPE))


def test_parse_header_value():
	assert parseHeaderValue('form-data; name="a;b"; filename="x \\"y\\".txt"') == (
		"form-data",
		{"name": "a;b", "filename": 'x "y".txt'},
	)


def test_boundary():
	assert boundary(CONTENT_TYPE) == b"XyZ"
	assert boundary('multipart/form-data; boundary="quoted"') == b"quoted"
	assert boundary("text/plain") is None
	assert boundary(None) is None


def test_parser_events():
	parser = MultipartParser(b"XyZ")
	atoms = list(parser.feed(BODY))
	assert parser.isComplete
	headers = [_ for _ in atoms if isinstance(_, MultipartHeaders)]
	assert len(headers) == 2
	assert headers[1].headers["Content-Type"] == "text/plain"
	data = b"".join(_.data for _ in atoms if isinstance(_, MultipartData))
	assert data == b"/docs/line one\r\n--Xy-"
	assert isinstance(atoms[-1], MultipartEnd)


@pytest.mark.parametrize("size", [1, 2, 3, 7, 64, len(BODY)])
def test_parse_form_any_chunk_size(size: int):
	form = parse(BODY, size)
	try:
		assert form.fields == {"r": "/docs/"}
		assert len(form.files) == 1
		part = form.files[0]
		assert (part.name, part.filename, part.contentType) == (
			"files[]",
			"a.txt",
			"text/plain",
		)
		assert part.data.read() == b"line one\r\n--Xy-"
	finally:
		form.close()


def test_parse_form_empty_file():
	body = (
		b"--XyZ\r\n"
		b'Content-Disposition: form-data; name="files[]"; filename="empty"\r\n'
		b"\r\n"
		b"\r\n"
		b"--XyZ--"
	)
	form = parse(body, 5)
	assert form.files[0].data.read() == b""
	form.close()


def test_parse_form_incomplete():
	with pytest.raises(HTTPRequestError) as e:
		parse(BODY[:-30], 16)
	assert e.value.status == 400


def test_parse_form_not_multipart():
	with pytest.raises(HTTPRequestError) as e:
		asyncio.run(parseForm(iterChunks(b"a=1", 8), "application/x-www-form-urlencoded"))
	assert e.value.status == 400


# EOF
