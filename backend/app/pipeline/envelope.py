"""
ProfileBuilder Backend — Response Envelope
============================================

What:  The single output type of the request pipeline: status, JSON body,
       headers. Route handlers never build responses directly.

Wire shapes:
    success: the handler's value as-is, or {"items": [...], "meta": {"total": n}}
             for list endpoints (see `paginated`)
    error:   {"error": <machine_code>, "message": <human_text>,
              "request_id": <id>, ...optional fields such as "violations"}
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from app.exceptions import ProfileBuilderError


@dataclass
class ResponseEnvelope:
    status: int
    body: Any = None
    headers: Dict[str, str] = field(default_factory=dict)
    # Keyword arguments for Response.set_cookie, one dict per cookie.
    cookies: List[Dict[str, Any]] = field(default_factory=list)

    def to_response(self) -> JSONResponse:
        response = JSONResponse(
            status_code=self.status,
            content=jsonable_encoder(self.body),
            headers=self.headers,
        )
        for cookie in self.cookies:
            response.set_cookie(**cookie)
        return response


def error_envelope(error: ProfileBuilderError, request_id: str = "") -> ResponseEnvelope:
    """Fixed translation of any taxonomy member into its wire shape."""
    body: Dict[str, Any] = {
        "error": error.error_code,
        "message": error.public_message,
        "request_id": request_id,
    }
    body.update(error.extra_body())
    return ResponseEnvelope(status=error.status_code, body=body)


def paginated(items: Sequence[Any], total: int) -> Dict[str, Any]:
    """List endpoint body."""
    return {"items": list(items), "meta": {"total": total}}
