from .http.model import (
	HTTPRequest,
	HTTPResponse,
	HTTPRequestError,
)  # NOQA: F401
from .decorators import on  # NOQA: F401
from .model import Application, Service  # NOQA: F401
from .config import Config, ConfigError, VERSION  # NOQA: F401
from .router import Router  # NOQA: F401
from .server import run  # NOQA: F401


# EOF
