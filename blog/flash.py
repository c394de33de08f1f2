"""One-shot flash messages stored in the signed session cookie."""
from starlette.requests import Request

_SESSION_KEY = "_flashes"


def flash(request: Request, category: str, message: str) -> None:
    """Queue *message* under *category* (``successMsg``, ``warningMsg``, ``errorMsg``)."""
    flashes = request.session.get(_SESSION_KEY, [])
    flashes.append([category, message])
    request.session[_SESSION_KEY] = flashes


def pop_flashes(request: Request) -> list[tuple[str, str]]:
    """Return and clear the pending flash messages."""
    return [tuple(item) for item in request.session.pop(_SESSION_KEY, [])]
