"""
core/logging.py 테스트
"""

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from core.constants import Paths
from core.logging import NOISY_LOGGERS, get_log_file_path, setup_logging


class TestSetupLogging:
    """setup_logging 테스트"""

    def teardown_method(self) -> None:
        root = logging.getLogger()
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()

    def test_creates_log_file(self, temp_dir: Path) -> None:
        setup_logging("web", log_dir=temp_dir)
        logging.getLogger("test").info("hello")

        assert (temp_dir / "web.log").exists()

    def test_handlers(self, temp_dir: Path) -> None:
        root = setup_logging("web", log_dir=temp_dir)

        assert len(root.handlers) == 2
        assert any(isinstance(h, TimedRotatingFileHandler) for h in root.handlers)

    def test_repeated_setup_does_not_duplicate(self, temp_dir: Path) -> None:
        setup_logging("web", log_dir=temp_dir)
        root = setup_logging("web", log_dir=temp_dir)

        assert len(root.handlers) == 2

    def test_noisy_loggers_quieted(self, temp_dir: Path) -> None:
        setup_logging("web", log_dir=temp_dir)

        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING


class TestGetLogFilePath:
    def test_web(self) -> None:
        assert get_log_file_path("web") == Paths.WEB_LOGS_DIR / "web.log"

    def test_other(self) -> None:
        assert get_log_file_path("admin") == Paths.LOGS_DIR / "admin.log"
