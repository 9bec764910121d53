"""
Contact form endpoint.

Accepts a contact submission, validates it and echoes back the sanitized
fields. Unknown fields are dropped.
"""

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from edge_guard.api.middleware.handler import ALL_METHODS, create_handler
from edge_guard.api.schemas.responses import ContactSubmissionResponse
from edge_guard.validation.models import RequestSchema, SchemaField, ValidatedRequest
from edge_guard.validation.validators import sanitize_html

CONTACT_SCHEMA = RequestSchema(
    body={
        "name": SchemaField("string", required=True, min_length=1, max_length=100),
        "email": SchemaField("email", required=True),
        "subject": SchemaField("string", max_length=200),
        "message": SchemaField("string", required=True, min_length=10, max_length=5000),
        "topic": SchemaField("string", enum=["general", "support", "sales"]),
        "newsletter": SchemaField("boolean"),
    }
)


def submit_contact(request: ValidatedRequest) -> JSONResponse:
    submission = dict(request.body)
    # Free-text fields are stored HTML-escaped
    for key in ("name", "subject", "message"):
        if key in submission:
            submission[key] = sanitize_html(submission[key]).sanitized

    payload = ContactSubmissionResponse(received=True, submission=submission)
    return JSONResponse(content=payload.model_dump(), status_code=201)


def register(app: FastAPI, path: str = "/api/v1/contact") -> None:
    app.add_route(
        path,
        create_handler(submit_contact, schema=CONTACT_SCHEMA, rate_limit="write"),
        methods=ALL_METHODS,
    )
