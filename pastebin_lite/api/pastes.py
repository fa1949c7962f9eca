from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, current_app, request
from pydantic import ValidationError

from pastebin_lite.api.request_time import request_now
from pastebin_lite.api.schemas import (
    HealthResponse,
    PasteCreateRequest,
    PasteCreatedResponse,
    PasteResponse,
    StatsResponse,
)
from pastebin_lite.domain.errors import InvalidArgument, StoreUnavailable
from pastebin_lite.domain.ids import is_valid_paste_id
from pastebin_lite.services.paste_store import PasteStore, paste_store_for

api_bp = Blueprint("api", __name__, url_prefix="/api")

NOT_FOUND_BODY = {"error": "Paste not found or expired"}


def _paste_store() -> PasteStore:
    return paste_store_for(current_app)


@api_bp.route("/healthz", methods=["GET"])
def health() -> tuple[dict, int]:
    """Health check that round-trips to the database."""

    try:
        _paste_store().ping()
    except StoreUnavailable:
        body = HealthResponse(ok=False, error="Database connection failed")
        return body.model_dump(), HTTPStatus.SERVICE_UNAVAILABLE
    return HealthResponse().model_dump(exclude_none=True), HTTPStatus.OK


@api_bp.route("/pastes", methods=["POST"])
def create_paste() -> tuple[dict, int]:
    """
    Create a new paste.

    Shape validation is handled by Pydantic; business rules by the store.
    """
    try:
        payload = PasteCreateRequest.model_validate(request.get_json(silent=True) or {})
    except ValidationError as exc:
        return {"error": "Invalid request body", "details": str(exc)}, HTTPStatus.BAD_REQUEST

    try:
        dto = _paste_store().create(
            payload.content,
            ttl_seconds=payload.ttl_seconds,
            max_views=payload.max_views,
        )
    except InvalidArgument as exc:
        return {"error": str(exc)}, HTTPStatus.BAD_REQUEST

    body = PasteCreatedResponse(id=dto["id"], url=f"{request.host_url}p/{dto['id']}")
    return body.model_dump(), HTTPStatus.CREATED


@api_bp.route("/pastes/<paste_id>", methods=["GET"])
def get_paste(paste_id: str) -> tuple[dict, int]:
    """Return a paste, counting one view."""

    if not is_valid_paste_id(paste_id):
        return NOT_FOUND_BODY, HTTPStatus.NOT_FOUND

    dto = _paste_store().read(paste_id, request_now())
    if dto is None:
        return NOT_FOUND_BODY, HTTPStatus.NOT_FOUND

    body = PasteResponse.model_validate(dto)
    return body.model_dump(mode="json"), HTTPStatus.OK


@api_bp.route("/stats", methods=["GET"])
def stats() -> tuple[dict, int]:
    body = StatsResponse.model_validate(_paste_store().stats())
    return body.model_dump(), HTTPStatus.OK
