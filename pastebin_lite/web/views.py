from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, current_app, render_template

from pastebin_lite.api.request_time import request_now
from pastebin_lite.domain.ids import is_valid_paste_id
from pastebin_lite.services.paste_store import paste_store_for

web_bp = Blueprint("web", __name__)


@web_bp.route("/", methods=["GET"])
def index() -> str:
    """Form for creating a paste; submits to the JSON API."""
    return render_template("index.html")


@web_bp.route("/p/<paste_id>", methods=["GET"])
def view_paste(paste_id: str) -> tuple[str, int]:
    """Render a paste as HTML, counting one view."""

    paste = None
    if is_valid_paste_id(paste_id):
        paste = paste_store_for(current_app).read(paste_id, request_now())

    if paste is None:
        return render_template("not_found.html"), HTTPStatus.NOT_FOUND
    return render_template("paste.html", paste=paste), HTTPStatus.OK
