import io

import pytest

from simplehttp.utils.logging import OUTPUT, LogOutput, access, statusColor
from simplehttp.utils.term import Term, TermColor

from conftest import basicAuth, makeRequest, makeRouter, process


@pytest.fixture
def output(monkeypatch) -> io.StringIO:
	stream = io.StringIO()
	monkeypatch.setattr(OUTPUT, "stream", stream)
	return stream


@pytest.fixture
def color():
	if not Term.Enable(True):
		pytest.skip("Colors are disabled by NO_COLOR")
	yield
	Term.Enable(False)


def test_status_colors():
	assert statusColor(101) == TermColor.HiCyan
	assert statusColor(200) == TermColor.Green
	assert statusColor(302) == TermColor.Yellow
	assert statusColor(404) == TermColor.Magenta
	assert statusColor(500) == TermColor.Red
	assert statusColor(0) == TermColor.Blue


def test_access_line(output):
	access(200, "127.0.0.1", "GET", "/index.html")
	assert output.getvalue() == "200 | 127.0.0.1 | GET | /index.html\n"


def test_access_line_colored(output, color):
	access(404, "::1", "GET", "/missing")
	assert output.getvalue() == "\033[0;38;5;5m404 | ::1 | GET | /missing\033[0m\n"


def test_unauthorized_access_line(output, tmp_path):
	router = makeRouter(
		paths=(("/", str(tmp_path)),), username="u", password="p", verbose=True
	)
	process(router, makeRequest("GET", "/x", basicAuth("bob", "guess")))
	assert output.getvalue() == "401 | 127.0.0.1 | GET | /x | bob | guess\n"


def test_file_sink_strips_colors(tmp_path, color):
	stream = io.StringIO()
	log = LogOutput(stream)
	path = tmp_path / "logs" / "server.log"
	log.open(path, header="SimpleHTTP v1.3.0")
	try:
		log.write(f"{Term.Color(TermColor.Green)}200 | GET{Term.RESET}\n")
	finally:
		log.close()
	assert stream.getvalue().startswith("\033[")
	assert path.read_text() == "SimpleHTTP v1.3.0\n200 | GET\n"


def test_file_sink_appends(tmp_path):
	path = tmp_path / "server.log"
	path.write_text("before\n")
	log = LogOutput(io.StringIO())
	log.open(path)
	log.write("after\n")
	log.close()
	assert path.read_text() == "before\nafter\n"


# EOF
