from typing import ClassVar, Union, Callable, TypeVar, Any, cast

T = TypeVar("T")


class Marks:
    """Defines the attributes used by decorators to annotate handlers"""

    ON: ClassVar[str] = "_simplehttp_on"
    ON_PRIORITY: ClassVar[str] = "_simplehttp_on_priority"

    @staticmethod
    def Meta(scope: Any) -> dict[str, Any]:
        """Returns the dictionary of meta attributes for the given value."""
        if isinstance(scope, type):
            if not hasattr(scope, "__simplehttp__"):
                setattr(scope, "__simplehttp__", {})
            return cast(dict[str, Any], getattr(scope, "__simplehttp__"))
        elif hasattr(scope, "__dict__"):
            return cast(dict[str, Any], scope.__dict__)
        else:
            raise RuntimeError(f"Metadata cannot be attached to object: {scope}")


def on(
    priority: int = 0, **methods: Union[str, list[str], tuple[str, ...]]
) -> Callable[[T], T]:
    """The @on decorator marks a service method as an HTTP request handler.

    It takes `GET` and `POST` (or `GET_POST`) arguments, each being a string
    or a list of strings describing an URI pattern (see `Route`) that, when
    matched, will trigger the method.

    >    @on(GET="/{path:any}")

    implies that the wrapped method is like

    >    def serve(self, request, path):
    >        ....

    The method must return a response, typically created with the
    request's factory methods (`request.respondFile`, `request.notFound`…).
    When several routes match, the one with the highest `priority` wins."""

    def decorator(function: T) -> T:
        meta = Marks.Meta(function)
        v = meta.setdefault(Marks.ON, [])
        meta.setdefault(Marks.ON_PRIORITY, priority)
        for http_methods, url in list(methods.items()):
            urls = (url,) if isinstance(url, str) else url
            for http_method in http_methods.upper().split("_"):
                for _ in urls:
                    v.append((http_method, _))
        return function

    return decorator


# EOF
