"""Axiom API 로깅 미들웨어.

Axiom API logging middleware.
Captures request/response data and emits one structured event per request.
Events go to Axiom when ``AXIOM_API_TOKEN`` and ``AXIOM_DATASET`` are set,
otherwise to the stdout JSON logger.
Logs: method, path, query params (repeated ``sort`` kept as a list), path
params, status code, duration, error reason.
"""

import json
import time
from typing import Any

from axiom_py import Client as AxiomClient
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.config import settings
from app.utils.logging import get_logger

logger = get_logger(__name__)

# 로깅 제외 경로 — Paths excluded from logging
_SKIP_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}


def _query_params(request: Request) -> dict[str, Any] | None:
    """반복 파라미터는 리스트로 보존 (Keep repeated keys such as ``sort`` as lists)."""
    if not request.query_params:
        return None
    params: dict[str, Any] = {}
    for key, value in request.query_params.multi_items():
        if key in params:
            existing = params[key]
            params[key] = existing + [value] if isinstance(existing, list) else [existing, value]
        else:
            params[key] = value
    return params


def _error_detail(body: bytes) -> str:
    """에러 응답 본문에서 사유를 추출합니다 (Extract the reason from an error body)."""
    try:
        data = json.loads(body)
        detail = data.get("detail", str(data)) if isinstance(data, dict) else str(data)
    except (json.JSONDecodeError, UnicodeDecodeError):
        detail = body.decode("utf-8", errors="replace")
    detail = str(detail)
    return detail[:500] + "..." if len(detail) > 500 else detail


class AxiomLoggingMiddleware(BaseHTTPMiddleware):
    """모든 API 요청/응답을 로깅하는 미들웨어.

    Middleware that logs every API request and response.
    """

    def __init__(self, app: Any) -> None:
        super().__init__(app)
        self._client: AxiomClient | None = None
        self._dataset: str = settings.AXIOM_DATASET

        if settings.AXIOM_API_TOKEN and settings.AXIOM_DATASET:
            self._client = AxiomClient(token=settings.AXIOM_API_TOKEN)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # 제외 경로 스킵 — Skip excluded paths
        if request.url.path in _SKIP_PATHS:
            return await call_next(request)

        start_time = time.time()
        method = request.method
        path = request.url.path
        query_params = _query_params(request)

        error_detail: str | None = None
        status_code: int = 500
        try:
            response = await call_next(request)
            status_code = response.status_code

            # 에러 응답시 body에서 사유 추출 — Extract error detail from error responses
            if status_code >= 400:
                resp_body = b""
                async for chunk in response.body_iterator:
                    resp_body += chunk if isinstance(chunk, bytes) else chunk.encode("utf-8")
                error_detail = _error_detail(resp_body)

                # 소비한 body를 다시 응답으로 반환 — Re-wrap consumed body
                response = Response(
                    content=resp_body,
                    status_code=status_code,
                    headers=dict(response.headers),
                    media_type=response.media_type,
                )
        except Exception as exc:
            error_detail = f"{type(exc).__name__}: {str(exc)[:300]}"
            raise
        finally:
            duration_ms = round((time.time() - start_time) * 1000, 2)

            log_event: dict[str, Any] = {
                "method": method,
                "path": path,
                "status_code": status_code,
                "duration_ms": duration_ms,
            }
            if query_params:
                log_event["query_params"] = query_params
            # 라우팅 이후에만 채워짐 (Populated once routing has matched)
            if request.path_params:
                log_event["path_params"] = dict(request.path_params)
            if error_detail:
                log_event["error"] = error_detail

            self._emit(log_event)

        return response

    def _emit(self, log_event: dict[str, Any]) -> None:
        """Axiom 으로 전송하거나 stdout 로거에 기록합니다."""
        if self._client is None:
            logger.info("request", extra={"event": log_event})
            return
        try:
            self._client.ingest_events(self._dataset, [log_event])
        except Exception as exc:
            # 로깅 실패가 요청 처리에 영향주지 않도록 — Never break a request on log failure
            logger.warning("axiom ingest failed", extra={"event": {"error": str(exc)}})
