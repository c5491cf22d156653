"""
Entry point for the HealthSync server.

    uvicorn healthsync.main:app
"""

import uvicorn

from .app.factory import create_app
from .config import get_config

app = create_app()


def main() -> None:
    config = get_config()
    uvicorn.run("healthsync.main:app", host=config.server.host, port=config.server.port, log_config=None)


if __name__ == "__main__":
    main()
