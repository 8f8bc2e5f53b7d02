import asyncio
import ssl
from functools import partial

import pytest

from simplehttp.config import ConfigError, merge
from simplehttp.http.status import HTTP_STATUS
from simplehttp.server import (
	AIOStreamServer,
	Listener,
	ServerOptions,
	listeners,
	respondRaw,
)

from conftest import makeRouter


async def exchange(app, payload: bytes, options: ServerOptions) -> bytes:
	"""Sends `payload` to a server running `app`, returning everything
	received until the server closes the connection."""
	server = await asyncio.start_server(
		partial(AIOStreamServer.OnRequest, app, options=options), "127.0.0.1", 0
	)
	port = server.sockets[0].getsockname()[1]
	try:
		reader, writer = await asyncio.open_connection("127.0.0.1", port)
		writer.write(payload)
		await writer.drain()
		data = await asyncio.wait_for(reader.read(), timeout=5)
		writer.close()
		return data
	finally:
		server.close()
		await server.wait_closed()


def serve(www, payload: bytes, **options) -> bytes:
	app = makeRouter(paths=(("/", str(www)),))
	return asyncio.run(exchange(app, payload, ServerOptions(keepalive=2.0, **options)))


def test_get(www):
	res = serve(www, b"GET /hello.html HTTP/1.1\r\nHost: x\r\nConnection: close\r\n\r\n")
	head, _, body = res.partition(b"\r\n\r\n")
	assert head.startswith(b"HTTP/1.1 200 OK\r\n")
	assert b"\r\nContent-Length: 11" in head
	assert b"\r\nConnection: close" in head
	assert b"\r\nDate: " in head
	assert body == b"<h1>hi</h1>"


def test_keep_alive_pipelining(www):
	res = serve(
		www,
		b"GET /notes.txt HTTP/1.1\r\nHost: x\r\n\r\n"
		b"GET /missing HTTP/1.1\r\nHost: x\r\n\r\n"
		b"GET /hello.html HTTP/1.1\r\nHost: x\r\nConnection: close\r\n\r\n",
	)
	assert res.count(b"HTTP/1.1 200 OK") == 2
	assert res.count(b"HTTP/1.1 404 Not Found") == 1
	assert res.count(b"Connection: keep-alive") == 2
	assert b"0123456789" in res
	assert res.endswith(b"<h1>hi</h1>")


def test_http10_closes(www):
	res = serve(www, b"GET /notes.txt HTTP/1.0\r\n\r\n")
	assert res.startswith(b"HTTP/1.0 200 OK\r\n")
	assert b"Connection: close" in res


def test_head_has_no_body(www):
	res = serve(www, b"HEAD /notes.txt HTTP/1.1\r\nConnection: close\r\n\r\n")
	assert res.endswith(b"\r\n\r\n")


def test_body_too_large(www):
	res = serve(
		www,
		b"POST /ping HTTP/1.1\r\nContent-Length: 100\r\n\r\n" + b"x" * 100,
		maxRequestBodySize=10,
	)
	assert res.startswith(b"HTTP/1.1 413 ")
	assert b"Connection: close" in res


def test_chunked_is_rejected(www):
	res = serve(
		www,
		b"POST /ping HTTP/1.1\r\nTransfer-Encoding: chunked\r\n\r\n5\r\nhello\r\n0\r\n\r\n",
	)
	assert res.startswith(b"HTTP/1.1 411 ")


def test_malformed_request(www):
	res = serve(www, b"BROKEN\r\n\r\n")
	assert res.startswith(b"HTTP/1.1 400 ")


def test_head_too_large(www):
	res = serve(
		www,
		b"GET / HTTP/1.1\r\nX-Big: " + b"a" * 2048,
		maxHeadSize=1024,
	)
	assert res.startswith(b"HTTP/1.1 431 ")


def test_upload_body_read_from_connection(www):
	body = (
		b"--B\r\n"
		b'Content-Disposition: form-data; name="r"\r\n\r\n/\r\n'
		b"--B\r\n"
		b'Content-Disposition: form-data; name="p"\r\n\r\n'
		+ str(www).encode()
		+ b"\r\n--B\r\n"
		b'Content-Disposition: form-data; name="files[]"; filename="big.bin"\r\n\r\n'
		+ b"z" * 300_000
		+ b"\r\n--B--\r\n"
	)
	res = serve(
		www,
		b"POST /upload HTTP/1.1\r\nConnection: close\r\n"
		b"Content-Type: multipart/form-data; boundary=B\r\n"
		+ f"Content-Length: {len(body)}\r\n\r\n".encode()
		+ body,
		readsize=4096,
	)
	assert res.startswith(b"HTTP/1.1 302 ")
	assert b"\r\nLocation: /\r\n" in res
	assert (www / "big.bin").read_bytes() == b"z" * 300_000


def test_respond_raw():
	message = HTTP_STATUS[413].encode()
	assert respondRaw(413) == (
		b"HTTP/1.1 413 " + message + b"\r\n"
		b"Content-Type: text/plain; charset=utf-8\r\n"
		+ f"Content-Length: {len(message)}\r\n".encode()
		+ b"Connection: close\r\n\r\n"
		+ message
	)


def test_listeners():
	(plain,) = listeners(merge({"addr": "127.0.0.1:8080"}))
	assert (plain.host, plain.port, plain.scheme) == ("127.0.0.1", 8080, "http")
	with pytest.raises(ConfigError):
		listeners(merge({"addrTLS": ":8443"}))
	with pytest.raises(ConfigError):
		listeners(merge({"addrTLS": ":8443", "certFile": "/nope.pem", "keyFile": "/nope.key"}))


def test_listener_scheme():
	context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
	secure = Listener(":8443", None, 8443, context)
	assert secure.context is context
	assert secure.scheme == "https"
	assert Listener(":8080", None, 8080).scheme == "http"


# EOF
