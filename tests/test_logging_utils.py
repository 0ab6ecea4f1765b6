import logging

from utils.logging_utils import setup_logging


def test_setup_logging_accepts_level_names() -> None:
    logger = setup_logging("debug")
    assert isinstance(logger, logging.Logger)
    assert logger.name == "utils.logging_utils"


def test_unknown_level_name_falls_back() -> None:
    assert isinstance(setup_logging("chatty"), logging.Logger)
