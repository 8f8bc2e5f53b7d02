import re

from conftest import basicAuth, bodyOf, makeRequest, makeRouter, process

RE_PONG = re.compile(r'^\{"message":"pong","time":".+"\}$')


def test_ping(tmp_path):
	router = makeRouter(paths=(("/", str(tmp_path)),))
	res = process(router, makeRequest("POST", "/ping"))
	assert res.status == 200
	assert res.getHeader("Content-Type") == "application/json; charset=utf8"
	assert RE_PONG.match(bodyOf(res).decode())


def test_ping_requires_auth(tmp_path):
	router = makeRouter(paths=(("/", str(tmp_path)),), username="u", password="p")
	assert process(router, makeRequest("POST", "/ping")).status == 401
	res = process(router, makeRequest("POST", "/ping", basicAuth("u", "p")))
	assert res.status == 200
	assert RE_PONG.match(bodyOf(res).decode())


def test_ping_is_post_only(tmp_path):
	router = makeRouter(paths=(("/", str(tmp_path)),))
	# A GET goes to the static files, where there's no `ping`
	assert process(router, makeRequest("GET", "/ping")).status == 404


# EOF
