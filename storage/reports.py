"""JSON report artifacts on the local filesystem."""

import json
import logging
import time
from pathlib import Path
from typing import Any, Optional

from core.errors import PersistenceError

logger = logging.getLogger(__name__)


class ReportWriter:
    """Writes one summary or full-suite report per file.

    Bare filenames land in ``results_dir`` (created on demand); a filename
    that carries a directory is used as given.
    """

    def __init__(self, results_dir: str = "results"):
        self.results_dir = Path(results_dir)

    def resolve_path(self, filename: Optional[str] = None, prefix: str = "evaluation") -> Path:
        if not filename:
            filename = f"{prefix}_{int(time.time() * 1000)}.json"
        path = Path(filename)
        if path.parent == Path("."):
            return self.results_dir / path
        return path

    def save(self, report: Any, filename: Optional[str] = None, prefix: str = "evaluation") -> Path:
        """Serialize ``report`` (anything with ``to_dict()`` or a dict) and return its path."""
        data = report.to_dict() if hasattr(report, "to_dict") else report
        path = self.resolve_path(filename, prefix)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False, default=str)
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(f"Failed to save report to {path}: {e}") from e

        logger.info(f"Results saved to: {path}")
        return path
