"""
Run the relay with uvicorn.

    python -m rendezvous
"""

import uvicorn

from rendezvous.config import configure_logging, settings_from_env
from rendezvous.transport.app import create_app


def main() -> None:
    settings = settings_from_env()
    configure_logging(settings.log_level)

    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        ws_ping_interval=settings.ws_ping_interval,
        ws_ping_timeout=settings.ws_ping_timeout,
    )


if __name__ == "__main__":
    main()
