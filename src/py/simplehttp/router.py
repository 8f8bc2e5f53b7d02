from .auth import BasicAuth
from .config import Config, PrefixMap
from .features.compress import compress
from .http.model import HTTPRequest, HTTPResponse
from .model import Application, Service
from .services.files import StaticService
from .services.ping import PingService
from .services.upload import UploadService
from .utils.logging import access, exception


class Router(Application):
	"""The server's application: authenticates requests, dispatches them to
	the ping, upload and static services, then compresses and logs the
	responses.

	| Method | Path      | Service                                  |
	|--------|-----------|------------------------------------------|
	| POST   | `/ping`   | `PingService`                            |
	| POST   | `/upload` | `UploadService` (when upload is enabled) |
	| POST   | other     | 400                                      |
	| GET    | any       | `StaticService`                          |
	| other  | any       | 404                                      |
	"""

	def __init__(self, config: Config, prefixes: PrefixMap):
		self.config: Config = config
		self.prefixes: PrefixMap = prefixes
		self.auth: BasicAuth | None = (
			BasicAuth(config.username, config.password) if config.basicAuth else None
		)
		services: list[Service] = [
			PingService(),
			StaticService(
				prefixes,
				indexNames=config.indexNames,
				fallback=config.fallback,
				enableUpload=config.enableUpload,
			),
		]
		if config.enableUpload:
			services.append(UploadService(prefixes))
		super().__init__(services)

	async def process(self, request: HTTPRequest) -> HTTPResponse:
		if self.auth:
			ok, creds = self.auth.check(request)
			if not ok:
				if self.config.verbose:
					access(
						401,
						request.peer,
						request.method,
						request.path,
						creds.user,
						creds.password,
					)
				return request.unauthorized()
		try:
			response = await super().process(request)
		except Exception as e:
			exception(e, f"Could not process {request.method} {request.path}")
			response = request.fail()
		if self.config.compress:
			response = compress(request, response)
		if self.config.verbose:
			access(response.status, request.peer, request.method, request.path)
		return response

	def onRouteNotFound(self, request: HTTPRequest) -> HTTPResponse:
		return request.badRequest() if request.method == "POST" else request.notFound()


# EOF
