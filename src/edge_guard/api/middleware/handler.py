"""
Handler wrapper composing CORS, rate limiting, auth and schema validation.

``create_handler`` turns a plain function taking a ``ValidatedRequest`` into
a Starlette endpoint. Each request runs through fixed stages, any of which
can answer early:

    1. OPTIONS preflight (204, CORS headers only, no rate limit use)
    2. Method allow-list (405)
    3. Rate limit (429)
    4. ``before_validation`` hook
    5. Bearer token presence when ``require_auth`` is set (401)
    6. Body schema for POST/PUT/PATCH (413 when too large, 400)
    7. Query and header schemas (400)
    8. ``after_validation`` hook
    9. The handler itself

Every response leaves with the CORS headers it does not already carry and,
once the limiter has run, the rate limit headers.

Example:
    contact_schema = RequestSchema(body={
        "email": SchemaField("email", required=True),
        "message": SchemaField("string", required=True, max_length=2000),
    })

    async def submit(request: ValidatedRequest) -> dict:
        return {"received": request.body}

    app.add_route(
        "/contact",
        create_handler(submit, schema=contact_schema, rate_limit="write"),
        methods=ALL_METHODS,
    )
"""

import inspect
import logging
import time
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Union

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from edge_guard.api.middleware.cors import CorsPolicy
from edge_guard.api.middleware.rate_limit import get_client_ip
from edge_guard.api.middleware.validation import (
    BODY_METHODS,
    BodyTooLargeError,
    JSONParseError,
    query_params_dict,
    read_json_body,
)
from edge_guard.api.responses import (
    exception_response,
    rate_limit_response,
    validation_error_response,
)
from edge_guard.api.schemas.exceptions import (
    APIException,
    AuthRequiredError,
    InternalError,
    InvalidPayloadError,
    MethodNotAllowedError,
    PayloadTooLargeError,
)
from edge_guard.config import get_settings
from edge_guard.ratelimit.limiter import RateLimiter, get_rate_limiter
from edge_guard.ratelimit.models import RateLimitConfig, RateLimitResult
from edge_guard.validation.models import (
    RequestSchema,
    ValidatedRequest,
    ValidationContext,
    ValidationResult,
)
from edge_guard.validation.schema import validate_object

logger = logging.getLogger(__name__)

HandlerResult = Union[Response, dict, list, None]
Handler = Callable[[ValidatedRequest], Union[HandlerResult, Awaitable[HandlerResult]]]
BeforeHook = Callable[[Request, ValidationContext], Union[Response, None, Awaitable[Response | None]]]
AfterHook = Callable[[ValidatedRequest, Request], Union[Response, None, Awaitable[Response | None]]]

# Every method a wrapped endpoint should be routed for; the wrapper itself
# answers preflights and unsupported methods
ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


@dataclass
class HandlerOptions:
    """Configuration for ``create_handler``."""

    schema: RequestSchema | None = None
    rate_limit: RateLimitConfig | str | None = None
    user_rate_limit: RateLimitConfig | str | None = None
    resolve_user_id: Callable[[Request], str | None] | None = None
    methods: list[str] = field(default_factory=lambda: ["POST"])
    cors: CorsPolicy | None = None
    require_auth: bool = False
    strict: bool = False
    before_validation: BeforeHook | None = None
    after_validation: AfterHook | None = None
    limiter: RateLimiter | None = None
    endpoint: str | None = None
    # Falls back to EG_MAX_BODY_SIZE
    max_body_size: int | None = None


def build_context(request: Request) -> ValidationContext:
    """Snapshot the request metadata handed to hooks and handlers."""
    return ValidationContext(
        identity=get_client_ip(request),
        user_agent=request.headers.get("user-agent", "unknown"),
        timestamp_ms=int(time.time() * 1000),
        method=request.method.upper(),
        path=request.url.path,
    )


def has_bearer_token(request: Request) -> bool:
    """Check for an ``Authorization: Bearer <token>`` header. The token is not verified."""
    authorization = request.headers.get("authorization", "")
    return authorization.startswith("Bearer ") and bool(authorization[7:].strip())


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def _render(result: HandlerResult) -> Response:
    if isinstance(result, Response):
        return result
    if result is None:
        return Response(status_code=204)
    return JSONResponse(content=result)


def create_handler(
    handler: Handler,
    options: HandlerOptions | None = None,
    **kwargs: Any,
) -> Callable[[Request], Awaitable[Response]]:
    """
    Wrap a handler with the request pipeline.

    Args:
        handler: Function receiving the ValidatedRequest. May be sync or
            async and may return a Response, a dict or list (rendered as
            JSON) or None (204). May raise APIException subclasses.
        options: Pipeline configuration
        **kwargs: HandlerOptions fields, overriding ``options``

    Returns:
        Async Starlette endpoint
    """
    if options is None:
        options = HandlerOptions(**kwargs)
    elif kwargs:
        options = replace(options, **kwargs)

    allowed_methods = [method.upper() for method in options.methods]
    schema = options.schema or RequestSchema()

    def check_rate_limit(request: Request, context: ValidationContext) -> RateLimitResult | None:
        if options.rate_limit is None and options.user_rate_limit is None:
            return None

        limiter = options.limiter or get_rate_limiter()
        endpoint = options.endpoint or context.path
        user_id = options.resolve_user_id(request) if options.resolve_user_id else None

        if options.rate_limit is None:
            if not user_id:
                return None
            return limiter.check(f"user:{user_id}", options.user_rate_limit, endpoint)

        if options.user_rate_limit is None:
            return limiter.check(context.identity, options.rate_limit, endpoint)

        return limiter.combined(
            context.identity,
            user_id,
            ip_config=options.rate_limit,
            user_config=options.user_rate_limit,
            endpoint=endpoint,
        )

    def log_validation_failure(context: ValidationContext, part: str, result: ValidationResult) -> None:
        logger.info(
            f"Request {part} failed validation",
            extra={
                "event": "validation_failed",
                "method": context.method,
                "path": context.path,
                "client_ip": context.identity,
                "part": part,
                "error": result.error,
            },
        )

    def validation_failure(result: ValidationResult) -> Response:
        errors = (result.error or "Validation failed").split("; ")
        return validation_error_response(errors)

    async def run_pipeline(request: Request, context: ValidationContext, state: dict) -> Response:
        if context.method not in allowed_methods:
            return exception_response(MethodNotAllowedError(context.method, allowed_methods))

        limit_result = check_rate_limit(request, context)
        if limit_result is not None:
            state["rate_limit"] = limit_result
            if not limit_result.allowed:
                logger.info(
                    f"Rate limit exceeded for {context.identity} on {context.path}",
                    extra={
                        "event": "rate_limit_exceeded",
                        "method": context.method,
                        "path": context.path,
                        "client_ip": context.identity,
                        "retry_after": limit_result.retry_after,
                    },
                )
                return rate_limit_response(limit_result)

        if options.before_validation is not None:
            early = await _maybe_await(options.before_validation(request, context))
            if early is not None:
                return early

        if options.require_auth and not has_bearer_token(request):
            logger.info(
                "Missing bearer token",
                extra={
                    "event": "auth_missing",
                    "method": context.method,
                    "path": context.path,
                    "client_ip": context.identity,
                },
            )
            return exception_response(AuthRequiredError())

        body: Any = {}
        if schema.body is not None and context.method in BODY_METHODS:
            max_body_size = options.max_body_size or get_settings().max_body_size
            try:
                raw_body = await read_json_body(request, max_body_size)
            except BodyTooLargeError as e:
                logger.warning(
                    "Request body too large",
                    extra={
                        "event": "request_size_exceeded",
                        "method": context.method,
                        "path": context.path,
                        "client_ip": context.identity,
                        "size": e.size,
                        "limit": e.limit,
                    },
                )
                return exception_response(PayloadTooLargeError(detail=e.detail))
            except JSONParseError as e:
                logger.info(
                    "Request body is not valid JSON",
                    extra={
                        "event": "invalid_json",
                        "method": context.method,
                        "path": context.path,
                        "client_ip": context.identity,
                        "error": e.detail,
                    },
                )
                return exception_response(InvalidPayloadError(detail=e.detail))

            result = validate_object(raw_body, schema.body, strict=options.strict)
            if not result.valid:
                log_validation_failure(context, "body", result)
                return validation_failure(result)
            body = result.sanitized

        query: dict[str, Any] = query_params_dict(request)
        if schema.query is not None:
            result = validate_object(query, schema.query, "query")
            if not result.valid:
                log_validation_failure(context, "query", result)
                return validation_failure(result)
            query = result.sanitized

        headers = {key.lower(): value for key, value in request.headers.items()}
        if schema.headers is not None:
            result = validate_object(headers, schema.headers, "headers")
            if not result.valid:
                log_validation_failure(context, "headers", result)
                return validation_failure(result)
            headers.update(result.sanitized)

        validated = ValidatedRequest(
            body=body,
            query=query,
            headers=headers,
            context=context,
            path_params=dict(request.path_params),
        )

        if options.after_validation is not None:
            early = await _maybe_await(options.after_validation(validated, request))
            if early is not None:
                return early

        return _render(await _maybe_await(handler(validated)))

    async def endpoint(request: Request) -> Response:
        cors = options.cors or CorsPolicy.from_settings()
        cors_headers = cors.headers(request.headers.get("origin"))

        if request.method.upper() == "OPTIONS":
            return Response(status_code=204, headers=cors_headers)

        context = build_context(request)
        state: dict[str, RateLimitResult] = {}

        try:
            response = await run_pipeline(request, context, state)
        except APIException as e:
            response = exception_response(e)
        except Exception as e:
            logger.exception(
                f"Unhandled error in handler for {context.method} {context.path}",
                extra={
                    "event": "handler_error",
                    "method": context.method,
                    "path": context.path,
                    "client_ip": context.identity,
                    "error": str(e),
                },
            )
            detail = str(e) if get_settings().debug else None
            response = exception_response(InternalError(detail=detail))

        for key, value in cors_headers.items():
            if key not in response.headers:
                response.headers[key] = value

        limit_result = state.get("rate_limit")
        if limit_result is not None:
            for key, value in limit_result.headers.items():
                response.headers[key] = value

        return response

    endpoint.__name__ = getattr(handler, "__name__", "endpoint")
    return endpoint
