from dataclasses import dataclass

from litestar import Response


@dataclass
class SaveResponse:
    """Outcome of a save: ``{"success": true}`` or a failure with a message."""

    success: bool
    message: str | None = None


def json_error(message: str, status_code: int) -> Response[SaveResponse]:
    return Response(SaveResponse(success=False, message=message), status_code=status_code)
