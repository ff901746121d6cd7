"""Run the student record service with uvicorn.

The store connection is established before the server starts listening;
if it fails the process exits with status 1.

Usage:
    python -m student_service
"""
import sys

import uvicorn

from student_service.config import Settings
from student_service.database import connect_store
from student_service.errors import StartupError
from student_service.logging_config import setup_logging, get_logger, log_with_context
from student_service.main import create_app

logger = get_logger("http")


def main() -> None:
    settings = Settings.from_env()
    setup_logging(settings.log_level)

    try:
        store = connect_store(settings.database_url)
    except StartupError as e:
        log_with_context(logger, "ERROR", "Startup aborted: {}".format(e))
        sys.exit(1)

    app = create_app(settings, store=store)
    log_with_context(logger, "INFO", "Server running on port {}".format(settings.port),
                     extra_data={"health": "http://localhost:{}/api/health".format(settings.port)})
    try:
        uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)
    finally:
        store.close()


if __name__ == "__main__":
    main()
