from typing import Any, Dict

from fastapi.responses import JSONResponse

from ..domain import DomainError


def ok(data: Any) -> Dict[str, Any]:
    """Return a success envelope."""
    return {"ok": True, "data": data}


def err(
    code: int | str,
    message: str,
    details: Dict[str, Any] | None = None,
    hint: str | None = None,
) -> Dict[str, Any]:
    """Return an error envelope stamped with the current request id."""
    from ..middlewares.request_id import request_id_ctx

    error: Dict[str, Any] = {"code": code, "message": message}
    if hint:
        error["hint"] = hint
    if details:
        error["details"] = details

    return {"ok": False, "request_id": request_id_ctx.get(None), "error": error}


def domain_error(exc: DomainError) -> JSONResponse:
    """Render a NOT_FOUND / VALIDATION_ERROR / CONFLICT with its HTTP status."""
    return JSONResponse(
        err(exc.code, exc.message, exc.details, exc.hint),
        status_code=exc.status_code,
    )
