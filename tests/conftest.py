import asyncio
from base64 import b64encode
from pathlib import Path

import pytest

from simplehttp.config import Config, merge, normalizePaths
from simplehttp.http.model import (
	HTTPBodyBlob,
	HTTPBodyFile,
	HTTPRequest,
	HTTPResponse,
)
from simplehttp.http.parser import HTTPParser
from simplehttp.router import Router
from simplehttp.utils.term import Term

# Tests compare log lines, which are easier to read without colors
Term.Enable(False)


def makeRequest(
	method: str,
	uri: str,
	headers: dict[str, str] | None = None,
	body: bytes = b"",
	peer: str = "127.0.0.1",
) -> HTTPRequest:
	"""Parses a raw request, so that requests go through the same decoding
	as when they come from a connection."""
	lines = [f"{method} {uri} HTTP/1.1", "Host: localhost"]
	if body:
		lines.append(f"Content-Length: {len(body)}")
	lines += [f"{k}: {v}" for k, v in (headers or {}).items()]
	raw = ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1") + body
	requests = [
		_ for _ in HTTPParser(peer=peer).feed(raw) if isinstance(_, HTTPRequest)
	]
	assert len(requests) == 1
	return requests[0]


def process(router: Router, request: HTTPRequest) -> HTTPResponse:
	return asyncio.run(router.process(request))


def bodyOf(response: HTTPResponse) -> bytes:
	body = response.body
	if isinstance(body, HTTPBodyBlob):
		return body.payload
	elif isinstance(body, HTTPBodyFile):
		return body.read()
	else:
		return b""


def basicAuth(user: str, password: str) -> dict[str, str]:
	token = b64encode(f"{user}:{password}".encode()).decode()
	return {"Authorization": f"Basic {token}"}


def makeRouter(**fields: object) -> Router:
	config: Config = merge({"verbose": False, "enableColor": False} | fields)
	return Router(config, normalizePaths(config.paths))


@pytest.fixture
def www(tmp_path: Path) -> Path:
	root = tmp_path / "www"
	root.mkdir()
	(root / "hello.html").write_text("<h1>hi</h1>")
	(root / "notes.txt").write_text("0123456789")
	(root / "dir").mkdir()
	return root


# EOF
