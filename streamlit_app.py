"""Streamlit entrypoint: configure logging, then render the Home page."""

import logging
import os
from importlib import import_module

import streamlit as st

LOG_LEVEL_ENV = "BLUEPRINT_LOG_LEVEL"


def configure_logging() -> None:
    """Send ``blueprint`` log records to stderr at the configured level."""

    level_name = os.environ.get(LOG_LEVEL_ENV, "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logger = logging.getLogger("blueprint")
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        logger.addHandler(handler)


def main() -> None:
    configure_logging()
    try:
        home_module = import_module("Home")
    except ModuleNotFoundError:
        st.error("Home page module not found.")
        return

    home_module.main()


if __name__ == "__main__":
    main()
