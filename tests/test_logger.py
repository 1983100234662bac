"""
日志模块测试
"""

import logging

from utils.logger import close_logger, get_logger


def test_logger_singleton_and_close():
    logger = get_logger()
    assert logger.name == "varexpr"
    assert get_logger() is logger
    assert len(logger.handlers) == 4
    assert {handler.level for handler in logger.handlers} == {
        logging.DEBUG,
        logging.INFO,
        logging.WARNING,
        logging.ERROR,
    }

    close_logger()
    assert logger.handlers == []

    # 关闭后再次获取会重新创建 handler
    assert len(get_logger().handlers) == 4
