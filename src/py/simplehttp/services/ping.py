from datetime import datetime

from ..decorators import on
from ..http.model import HTTPRequest, HTTPResponse
from ..model import Service


class PingService(Service):
	"""Answers liveness checks with the server's local time."""

	@on(POST="/ping")
	def ping(self, request: HTTPRequest) -> HTTPResponse:
		return request.returns(
			{"message": "pong", "time": datetime.now().astimezone()}
		)


# EOF
