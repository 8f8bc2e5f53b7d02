from typing import Optional, Iterable, ClassVar

from .routing import Handler, Dispatcher
from .http.model import HTTPRequest, HTTPResponse

# -----------------------------------------------------------------------------
#
# SERVICE
#
# -----------------------------------------------------------------------------


class Service:
    """A service groups request handlers (methods decorated with `@on`)
    that are mounted in an application under a common prefix."""

    PREFIX: ClassVar[str] = ""
    NO_HANDLER: ClassVar[list[str]] = [
        "name",
        "app",
        "prefix",
        "_handlers",
        "isMounted",
        "handlers",
    ]

    def __init__(
        self, name: Optional[str] = None, *, prefix: str | None = None
    ) -> None:
        self.name: str = name or self.__class__.__name__
        self.app: Optional[Application] = None
        self.prefix = prefix or self.PREFIX
        self._handlers: Optional[list[Handler]] = None

    @property
    def isMounted(self) -> bool:
        return self.app is not None

    @property
    def handlers(self) -> list[Handler]:
        if self._handlers is None:
            self._handlers = list(self.iterHandlers())
        return self._handlers

    def iterHandlers(self) -> Iterable[Handler]:
        for value in (getattr(self, _) for _ in dir(self) if _ not in self.NO_HANDLER):
            handler = Handler.Get(value)
            if handler:
                yield handler

    def __repr__(self) -> str:
        return f"(Service {self.name}{' :mounted' if self.isMounted else ''})"


# -----------------------------------------------------------------------------
#
# APPLICATION
#
# -----------------------------------------------------------------------------


class Application:
    """Dispatches requests to the handlers of the mounted services."""

    def __init__(self, services: list[Service] | None = None) -> None:
        self.dispatcher: Dispatcher = Dispatcher()
        self.services: list[Service] = []
        for service in services or ():
            self.mount(service)

    async def process(self, request: HTTPRequest) -> HTTPResponse:
        route, params = self.dispatcher.match(request.method, request.path)
        if route and route.handler:
            return await route.handler(request, params or {})
        else:
            return self.onRouteNotFound(request)

    def onRouteNotFound(self, request: HTTPRequest) -> HTTPResponse:
        return request.notFound()

    def mount(self, service: Service, prefix: Optional[str] = None) -> Service:
        if service.isMounted:
            raise RuntimeError(
                f"Cannot mount service, it is already mounted: {service}"
            )
        for handler in service.handlers:
            self.dispatcher.register(handler, prefix or service.prefix)
        service.app = self
        self.services.append(service)
        return service


# EOF
