"""Append-only log of bootstrap events."""

import sys
from datetime import datetime
from pathlib import Path
from typing import Optional


class EventLog:
    """Writes `[timestamp] LEVEL: message` lines to a log file.

    A None path disables logging.
    """

    def __init__(self, log_file: Optional[Path]):
        self.log_file = log_file

    def log_event(self, message: str, level: str = 'INFO') -> None:
        if self.log_file is None:
            return
        timestamp = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
        entry = f'[{timestamp}] {level}: {message}\n'
        try:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.log_file, 'a') as f:
                f.write(entry)
        except (IOError, OSError) as e:
            print(f"Warning: Failed to write event log: {e}", file=sys.stderr)
