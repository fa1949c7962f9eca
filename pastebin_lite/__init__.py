from __future__ import annotations

import os
from typing import Any, Mapping

from flask import Flask
from flask_cors import CORS

from .config import get_config
from .db import init_db
from .observability import init_observability
from .api.errors import register_error_handlers
from .api.pastes import api_bp
from .cli import register_cli
from .web.views import web_bp


def create_app(
    env_name: str | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Flask:
    """
    Application factory for the paste service.

    The configuration is selected based on the provided ``env_name`` or,
    if not given, the ``APP_ENV`` environment variable (falling back to
    ``development``). ``overrides`` are applied last.

    The reaper is not started here, so apps built for CLI commands never
    sweep in the background; ``run.py`` starts it for the server process.
    """
    if env_name is None:
        env_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__)
    app_config = get_config(env_name)
    app.config.from_object(app_config)
    if overrides:
        app.config.update(overrides)

    CORS(app, resources={r"/api/*": {"origins": "*"}})

    # Initialize infrastructure layers
    init_observability(app)
    init_db(app)

    register_error_handlers(app)
    app.register_blueprint(api_bp)
    app.register_blueprint(web_bp)
    register_cli(app)

    return app
