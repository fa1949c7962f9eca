from __future__ import annotations

import os

from pastebin_lite import create_app
from pastebin_lite.db import get_database
from pastebin_lite.worker import start_reaper, stop_reaper


def main() -> None:
    env = os.getenv("APP_ENV", "development")
    app = create_app(env)

    host = os.getenv("FLASK_RUN_HOST", "0.0.0.0")
    port = int(os.getenv("FLASK_RUN_PORT", "3000"))

    # Background reaper (disabled in testing)
    if app.config.get("REAPER_ENABLED", True) and not app.config.get("TESTING", False):
        start_reaper(app)

    try:
        app.run(host=host, port=port, use_reloader=False)
    finally:
        stop_reaper(app)
        get_database(app).close()


if __name__ == "__main__":
    main()
