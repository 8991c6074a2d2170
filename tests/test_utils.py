"""Tests for logging and I/O helpers."""
import numpy as np
import pytest

from sigaudit.errors import Score, UnknownIdentity
from sigaudit.utils.io import (
    discover_images,
    load_image,
    load_json,
    read_text,
    sanitize_id,
    sanitize_name,
    save_image,
    write_text,
)
from sigaudit.utils.logger import AuditLogger, ProgressTracker


class TestAuditLogger:
    """Run logging and JSON reports."""

    def test_scores_recorded(self, tmp_path):
        logger = AuditLogger("audit", tmp_path, console_output=False, file_output=False)
        logger.log_score(1, "Ann Lee (1)", Score(0.75))
        logger.log_score(2, "Bo Chan (2)", UnknownIdentity("Bo Chan (2)"))

        assert logger.scores == [
            {"row": 1, "identity": "Ann Lee (1)", "known": True, "score": 0.75},
            {"row": 2, "identity": "Bo Chan (2)", "known": False},
        ]

    def test_save_report(self, tmp_path):
        logger = AuditLogger("audit", tmp_path, console_output=False, file_output=False)
        logger.log_params({"image": "register.png"})
        logger.log_score(1, "Ann Lee (1)", Score(0.5))
        logger.log_results({"rows": 1, "mean_score": 0.5})

        path = logger.save_report("report.json")
        report = load_json(path)

        assert report["run_name"] == "audit"
        assert report["params"] == {"image": "register.png"}
        assert report["scores"][0]["score"] == 0.5
        assert report["results"]["rows"] == 1

    def test_file_output(self, tmp_path):
        logger = AuditLogger("audit", tmp_path, console_output=False, file_output=True)
        logger.info("hello")
        for handler in logger.logger.handlers:
            handler.flush()

        log_files = list(tmp_path.glob("audit_*.log"))
        assert len(log_files) == 1
        assert "hello" in log_files[0].read_text()

    def test_progress_tracker(self, tmp_path):
        logger = AuditLogger("progress", tmp_path, console_output=False, file_output=False)
        tracker = ProgressTracker(3, logger)
        for _ in range(3):
            tracker.update()
        assert tracker.current == 3
        assert tracker.finish() >= 0


class TestIO:
    """Files and identity names."""

    def test_sanitize(self):
        assert sanitize_name("Doe, John Q") == "doejohnq"
        assert sanitize_id("**12*3") == "123"

    def test_text_round_trip(self, tmp_path):
        path = tmp_path / "nested" / "file.txt"
        write_text("a|b|\n", path)
        assert read_text(path) == "a|b|\n"

    def test_read_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_text(tmp_path / "missing.txt")

    def test_image_round_trip(self, tmp_path):
        image = np.zeros((10, 12), dtype=np.uint8)
        image[2:4, 3:5] = 255
        path = tmp_path / "out" / "image.png"
        save_image(image, path)

        loaded = load_image(path, grayscale=True)
        np.testing.assert_array_equal(loaded, image)
        assert discover_images(tmp_path) == [path]

    def test_load_missing_image(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_image(tmp_path / "missing.png")
