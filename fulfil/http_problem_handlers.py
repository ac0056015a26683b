# fulfil/http_problem_handlers.py
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from fulfil.api.problem import make_problem, problem_from_order_error
from fulfil.services.order_errors import OrderError

logger = logging.getLogger("fulfil.http")


def _new_trace_id() -> str:
    return f"t_{uuid.uuid4().hex[:12]}"


def _req_ctx(req: Request) -> Dict[str, Any]:
    return {"path": getattr(req.url, "path", ""), "method": req.method}


def _with_request(problem: Dict[str, Any], req: Request) -> Dict[str, Any]:
    out = dict(problem)
    out.setdefault("trace_id", _new_trace_id())
    merged = _req_ctx(req)
    if isinstance(out.get("context"), dict):
        merged.update(out["context"])
    out["context"] = merged
    return out


def _problem_from_http_exc(req: Request, exc: HTTPException) -> Dict[str, Any]:
    """框架层 HTTPException（未匹配路由 / 方法不允许等）-> Problem。"""
    status_code = int(exc.status_code)
    msg = str(exc.detail) if exc.detail is not None else "Request rejected"
    return _with_request(
        make_problem(
            status_code=status_code,
            error_code="not_found" if status_code == 404 else "http_error",
            message=msg,
            details=[{"type": "state", "reason": msg}],
        ),
        req,
    )


def _loc_to_path(loc: Any) -> str:
    parts = [str(p) for p in (loc or ()) if p != "body"]
    return ".".join(parts)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(Exception)
    async def _unhandled_exc(req: Request, exc: Exception):
        trace_id = _new_trace_id()
        logger.exception("UNHANDLED_EXC[%s]: %s", trace_id, exc)
        content = make_problem(
            status_code=500,
            error_code="internal_error",
            message="Internal server error",
            context=_req_ctx(req),
            trace_id=trace_id,
        )
        return JSONResponse(status_code=500, content=content)

    @app.exception_handler(OrderError)
    async def _order_exc(req: Request, exc: OrderError):
        content = _with_request(problem_from_order_error(exc), req)
        if exc.http_status >= 500:
            logger.warning("ORDER_ERROR[%s] %s: %s", content["trace_id"], exc.code, exc.message)
        return JSONResponse(status_code=int(exc.http_status), content=content)

    @app.exception_handler(RequestValidationError)
    async def _validation_exc(req: Request, exc: RequestValidationError):
        details: List[Dict[str, Any]] = []
        for e in exc.errors():
            if not isinstance(e, dict):
                continue
            details.append(
                {
                    "type": "validation",
                    "path": _loc_to_path(e.get("loc")),
                    "reason": str(e.get("msg") or e.get("type") or "invalid"),
                }
            )

        content = make_problem(
            status_code=422,
            error_code="request_validation_error",
            message="Validation error: "
            + ", ".join(f"{d['path']}: {d['reason']}" for d in details),
            context=_req_ctx(req),
            details=details,
            trace_id=_new_trace_id(),
        )
        return JSONResponse(status_code=422, content=content)

    @app.exception_handler(HTTPException)
    async def _http_exc(req: Request, exc: HTTPException):
        content = _problem_from_http_exc(req, exc)
        return JSONResponse(status_code=int(exc.status_code), content=content)
