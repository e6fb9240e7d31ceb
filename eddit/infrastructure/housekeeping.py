import logging
from pathlib import Path
from typing import List

PROGRESS_PREFIX = "eddit_progress_"
CONCAT_PREFIX = "eddit_concat_"

class HousekeepingService:
    """Removes scratch artifacts a crashed run may have left behind."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def cleanup_scratch(self, scratch_dir: Path) -> List[Path]:
        removed = []
        if not scratch_dir.is_dir():
            return removed
        for prefix in (PROGRESS_PREFIX, CONCAT_PREFIX):
            for stale in scratch_dir.glob(f"{prefix}*.txt"):
                try:
                    stale.unlink()
                    removed.append(stale)
                except OSError as e:
                    self.logger.warning(f"Could not remove stale scratch file {stale}: {e}")
        if removed:
            self.logger.info(f"Housekeeping: removed {len(removed)} stale scratch file(s) from {scratch_dir}")
        return removed
