import logging

from kdp_press.logging_config import ROOT_LOGGER, get_logger, setup_logger


def test_names_are_nested_under_package_logger():
    assert get_logger("batch").name == "kdp_press.batch"
    assert get_logger("kdp_press.pipeline.batch").name == "kdp_press.pipeline.batch"
    assert get_logger().name == ROOT_LOGGER


def test_handler_attached_once():
    setup_logger("a")
    setup_logger("b")
    root = logging.getLogger(ROOT_LOGGER)
    assert len(root.handlers) == 1
    assert not get_logger("a").handlers
