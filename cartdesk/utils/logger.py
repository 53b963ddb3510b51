import logging


def get_logger(name: str) -> logging.Logger:
    """Module-level logger; handlers and format are set up once in create_app()."""
    return logging.getLogger(name)
