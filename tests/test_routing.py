import asyncio

import pytest

from simplehttp.decorators import on
from simplehttp.http.model import HTTPRequestError
from simplehttp.model import Application, Service
from simplehttp.routing import Dispatcher, Handler, Route

from conftest import bodyOf, makeRequest


class Echo(Service):
	@on(GET="/items/{name:rest}")
	def named(self, request, name):
		return request.respondText(name)

	@on(priority=1, GET="/items/special")
	def special(self, request):
		return request.respondText("special")

	@on(GET="/files/{path:any}")
	def files(self, request, path):
		return request.returns({"path": path})

	@on(GET_POST="/fail")
	async def fail(self, request):
		raise HTTPRequestError("Nope", status=409)


def run(app: Application, method: str, uri: str):
	return asyncio.run(app.process(makeRequest(method, uri)))


def test_route_patterns():
	assert Route("/a/{x:rest}").match("/a/b/c") == {"x": "b/c"}
	assert Route("/a/{x:rest}").match("/a/") is None
	assert Route("/{path:any}").match("/") == {"path": ""}
	assert Route("/{path:any}").match("/a/b.c") == {"path": "a/b.c"}
	# Text is matched literally
	assert Route("/a.b").match("/axb") is None


def test_route_unknown_pattern():
	with pytest.raises(ValueError):
		Route("/{x:unknown}")
	with pytest.raises(ValueError):
		Route("/{x:int}")
	with pytest.raises(ValueError):
		Route("/{x:[0-9]+}")


def test_dispatch():
	app = Application([Echo()])
	assert bodyOf(run(app, "GET", "/items/a/b")) == b"a/b"
	assert bodyOf(run(app, "GET", "/items/special")) == b"special"
	assert bodyOf(run(app, "GET", "/files/")) == b'{"path":""}'
	assert bodyOf(run(app, "GET", "/files/x.txt")) == b'{"path":"x.txt"}'
	assert run(app, "GET", "/items/").status == 404
	assert run(app, "GET", "/other").status == 404
	assert run(app, "PUT", "/items/1").status == 404


def test_handler_errors():
	app = Application([Echo()])
	res = run(app, "POST", "/fail")
	assert res.status == 409
	assert bodyOf(res) == b"Nope"


def test_handler_methods():
	handler = Handler.Get(Echo().fail)
	assert handler is not None
	assert sorted(handler.methods) == ["GET", "POST"]
	assert Handler.Get(lambda: None) is None


def test_dispatcher_prefix():
	dispatcher = Dispatcher()
	handler = Handler.Get(Echo().special)
	assert handler is not None
	dispatcher.register(handler, "/api")
	route, params = dispatcher.match("GET", "/api/items/special")
	assert route is not None and params == {}
	assert dispatcher.match("GET", "/items/special") == (None, None)


def test_mount_twice():
	service = Echo()
	Application([service])
	with pytest.raises(RuntimeError):
		Application([service])


# EOF
