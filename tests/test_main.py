import pytest

from simplehttp.__main__ import flagValues, main, makeParser
from simplehttp.config import ConfigError, VERSION_LINE, loadConfig


def test_version(capsys):
	assert main(["-version"]) == 0
	assert capsys.readouterr().out == f"{VERSION_LINE}\n"


def test_makeconfig(tmp_path):
	path = tmp_path / "config.yaml"
	assert main(["--makeconfig", str(path)]) == 0
	assert loadConfig(path)["addr"] == "0.0.0.0:8080"
	# The file is never overwritten
	assert main(["-makeconfig", str(path)]) == 1


def test_flag_values():
	args = makeParser().parse_args(
		[
			"-addr",
			":9000",
			"--compress",
			"TRUE",
			"-indexnames",
			"index.html,,home.html",
			"-maxrequestbodysize",
			"0",
			"-path",
			"./www",
		]
	)
	assert flagValues(args) == {
		"addr": ":9000",
		"compress": True,
		"indexNames": ("index.html", "home.html"),
		"maxRequestBodySize": 0,
		"path": "./www",
	}


def test_flag_values_invalid():
	with pytest.raises(ConfigError):
		flagValues(makeParser().parse_args(["-verbose", "maybe"]))


def test_invalid_flag_exits():
	assert main(["-enableupload", "nope"]) == 1


def test_missing_config_file(tmp_path):
	assert main(["-config", str(tmp_path / "missing.yaml")]) == 1


# EOF
