"""
Logging utilities for register auditing runs.

Library modules log through ``logging.getLogger(__name__)``. Batch runs
(scanning a folder of registers, training a cohort of classifiers) use
``AuditLogger``, which also keeps per-identity scores and run parameters
and persists them as a JSON report.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import json

from sigaudit.errors import ClassificationResult
from sigaudit.utils.io import save_json


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class AuditLogger:
    """
    Logger for a single audit run.

    Attributes:
        name: Run name, also used as the logger name
        log_dir: Directory for the log file and the JSON report
        logger: Python logger instance
        scores: Classification outcome per identity, in logging order
        params: Parameters the run was started with
    """

    def __init__(
        self,
        name: str,
        log_dir: Union[str, Path] = "logs",
        level: str = "INFO",
        console_output: bool = True,
        file_output: bool = True
    ):
        """
        Initialize the run logger.

        Args:
            name: Name of the run
            log_dir: Directory for log files
            level: Logging level (DEBUG, INFO, WARNING, ERROR)
            console_output: Whether to output to console
            file_output: Whether to output to a timestamped file
        """
        self.name = name
        self.log_dir = Path(log_dir)
        self.start_time = datetime.now()
        self.scores: List[Dict[str, Any]] = []
        self.params: Dict[str, Any] = {}
        self.results: Dict[str, Any] = {}

        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.upper()))
        self.logger.handlers = []

        formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

        if console_output:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setFormatter(formatter)
            self.logger.addHandler(console_handler)

        if file_output:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            timestamp = self.start_time.strftime('%Y%m%d_%H%M%S')
            file_handler = logging.FileHandler(self.log_dir / f"{name}_{timestamp}.log")
            file_handler.setFormatter(formatter)
            self.logger.addHandler(file_handler)

    def info(self, message: str) -> None:
        self.logger.info(message)

    def warning(self, message: str) -> None:
        self.logger.warning(message)

    def error(self, message: str) -> None:
        self.logger.error(message)

    def log_params(self, params: Dict[str, Any]) -> None:
        """Record and log the parameters of the run."""
        self.params = dict(params)
        self.info(f"Parameters: {json.dumps(self.params, indent=2, default=str)}")

    def log_score(self, row: int, identity: str, result: ClassificationResult) -> None:
        """
        Record the classification outcome of one register row.

        Args:
            row: Register row number
            identity: Name and ID of the entry
            result: Score or UnknownIdentity
        """
        record = {'row': row, 'identity': identity, 'known': result.is_known}
        if result.is_known:
            record['score'] = result.value
            self.info(f"Row {row} ({identity}): score {result.value:.4f}")
        else:
            self.warning(f"Row {row} ({identity}): no trained model")
        self.scores.append(record)

    def log_results(self, results: Dict[str, Any]) -> None:
        """Record and log the summary of the run."""
        self.results = dict(results)
        self.info("Final Results:")
        for key, value in results.items():
            if isinstance(value, float):
                self.info(f"  {key}: {value:.6f}")
            else:
                self.info(f"  {key}: {value}")

    def save_report(self, filename: Optional[str] = None) -> Path:
        """
        Save parameters, scores and results to a JSON file.

        Args:
            filename: Optional custom filename

        Returns:
            Path to the saved report
        """
        if filename is None:
            timestamp = self.start_time.strftime('%Y%m%d_%H%M%S')
            filename = f"{self.name}_{timestamp}_report.json"

        filepath = self.log_dir / filename

        output = {
            'run_name': self.name,
            'start_time': self.start_time.isoformat(),
            'end_time': datetime.now().isoformat(),
            'params': self.params,
            'scores': self.scores,
            'results': self.results,
        }

        save_json(output, filepath)

        self.info(f"Report saved to {filepath}")
        return filepath


def get_logger(
    name: str,
    log_dir: str = "logs",
    level: str = "INFO",
    file_output: bool = True
) -> AuditLogger:
    """
    Create a run logger.

    Args:
        name: Logger name
        log_dir: Directory for log files
        level: Logging level
        file_output: Whether to also write a timestamped log file

    Returns:
        AuditLogger instance
    """
    return AuditLogger(name, log_dir, level, file_output=file_output)


class ProgressTracker:
    """
    Track progress of long-running batch operations.
    """

    def __init__(self, total: int, logger: Optional[AuditLogger] = None):
        self.total = total
        self.current = 0
        self.start_time = datetime.now()
        self.logger = logger

    def update(self, n: int = 1) -> None:
        """Advance by n items, reporting roughly every 5%."""
        self.current += n

        if self.logger and self.current % max(1, self.total // 20) == 0:
            elapsed = (datetime.now() - self.start_time).total_seconds()
            rate = self.current / elapsed if elapsed > 0 else 0
            eta = (self.total - self.current) / rate if rate > 0 else 0

            self.logger.info(
                f"Progress: {self.current}/{self.total} "
                f"({100 * self.current / max(1, self.total):.1f}%) "
                f"ETA: {eta:.1f}s"
            )

    def finish(self) -> float:
        """Return the total elapsed time in seconds."""
        elapsed = (datetime.now() - self.start_time).total_seconds()
        if self.logger:
            self.logger.info(f"Completed {self.total} items in {elapsed:.2f}s")
        return elapsed
