"""
Signed webhook receiver.

Only mounted when ``EG_WEBHOOK_SECRET`` is set. Requests must carry a valid
HMAC-SHA256 signature of the raw body; the verified event is acknowledged
with its type and id.
"""

from fastapi import FastAPI

from edge_guard.api.middleware.handler import ALL_METHODS, create_handler
from edge_guard.api.middleware.webhook import webhook_hook
from edge_guard.api.schemas.responses import WebhookAckResponse
from edge_guard.validation.models import RequestSchema, SchemaField, ValidatedRequest

WEBHOOK_SCHEMA = RequestSchema(
    body={
        "id": SchemaField("string", required=True, max_length=100),
        "event": SchemaField("string", required=True, pattern=r"^[a-z0-9_.]+$", max_length=100),
        "created_at": SchemaField("date"),
        "data": SchemaField("object"),
    }
)


def receive_event(request: ValidatedRequest) -> dict:
    return WebhookAckResponse(id=request.body["id"], event=request.body["event"]).model_dump()


def register(app: FastAPI, secret: str, path: str = "/api/v1/webhooks") -> None:
    app.add_route(
        path,
        create_handler(
            receive_event,
            schema=WEBHOOK_SCHEMA,
            rate_limit="api",
            before_validation=webhook_hook(secret),
        ),
        methods=ALL_METHODS,
    )
