"""Main entry point for the Span Annotator application."""

import logging
import sys

from spanapp.db import create_session_factory
from spanapp.ui.application import configure_application_names, create_application
from spanapp.ui.dialogs.settings import log_level_setting

#: Format of log records.
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging() -> None:
    """Configure the root logger with the level stored in the preferences."""
    logging.basicConfig(level=log_level_setting(), format=LOG_FORMAT)


def main():
    """
    Run the Span Annotator application.
    """
    configure_application_names()
    configure_logging()
    app, _window = create_application(create_session_factory())
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
