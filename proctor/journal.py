"""Append-only audit journal for one exam session."""

from datetime import datetime
from pathlib import Path


class SessionJournal:
    """Writes `[timestamp] - EVENT - details` lines to a session log file."""

    def __init__(self, log_path: Path):
        self.log_path = Path(log_path)
        self.log_path.parent.mkdir(parents=True, exist_ok=True)

    def __call__(self, event: str, details: str = ""):
        self.log(event, details)

    def log(self, event: str, details: str = ""):
        """Append an entry to the session log."""
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        log_entry = f"[{timestamp}] - {event}"
        if details:
            log_entry += f" - {details}"
        log_entry += "\n"

        with open(self.log_path, 'a', encoding='utf-8') as f:
            f.write(log_entry)

    def read_events(self) -> list[str]:
        """Return the event names recorded so far, in order."""
        if not self.log_path.exists():
            return []
        events = []
        with open(self.log_path, 'r', encoding='utf-8') as f:
            for line in f:
                parts = line.rstrip("\n").split(" - ")
                if len(parts) >= 2:
                    events.append(parts[1])
        return events
