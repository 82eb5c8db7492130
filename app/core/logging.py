import logging
import sys


LOG_FORMAT = "[%(asctime)s] %(levelname)s in %(module)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Stream application logs to stdout."""
    root = logging.getLogger()
    root.setLevel(level.upper())

    # Avoid stacking handlers when the app is re-created (tests, reloads)
    for handler in root.handlers:
        if getattr(handler, "_storefront", False):
            return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._storefront = True
    root.addHandler(handler)

    # SQL echo is controlled by the engine, keep the sqlalchemy logger quiet otherwise
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
