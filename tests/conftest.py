import logging

import pytest


@pytest.fixture(autouse=True)
def reset_csvclean_logger():
    yield
    logger = logging.getLogger("csvclean")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def write_csv(tmp_path):
    def _write(name, text, encoding="utf-8"):
        path = tmp_path / name
        path.write_bytes(text.encode(encoding))
        return path

    return _write
