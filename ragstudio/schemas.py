"""Request/response models — the contract between the service and clients."""

from typing import Any, Literal

from fastapi.responses import JSONResponse
from pydantic import BaseModel


class StreamEvent(BaseModel):
    """A single line in the pipeline query stream.

    Types:
        chunk    — one fragment of generated text, in ``data``
        complete — stream finished normally, no payload
        error    — stream aborted, message in ``error``

    Exactly one ``complete`` or ``error`` event ends every stream.
    """

    type: Literal["chunk", "complete", "error"]
    data: str | None = None
    error: str | None = None

    @classmethod
    def chunk(cls, data: str) -> "StreamEvent":
        return cls(type="chunk", data=data)

    @classmethod
    def complete(cls) -> "StreamEvent":
        return cls(type="complete")

    @classmethod
    def failure(cls, message: str) -> "StreamEvent":
        return cls(type="error", error=message)

    def to_line(self) -> str:
        """Compact JSON terminated by a newline (one NDJSON record)."""
        return self.model_dump_json(exclude_none=True) + "\n"


def error_response(
    status_code: int, error: str, details: Any = None
) -> JSONResponse:
    """The ``{"success": false, "error": ...}`` envelope used by pipeline routes."""
    content: dict[str, Any] = {"success": False, "error": error}
    if details is not None:
        content["details"] = details
    return JSONResponse(content, status_code=status_code)


def success_response(data: Any) -> dict[str, Any]:
    return {"success": True, "data": data}
