"""
Per-tick KPI CSV for a run directory (one row per tick, header first).
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable, Optional

from src.simulation.metrics import MetricsCollector


class CSVLogger:
    """
    Appends KPI rows to `file_path` using a fixed column order.

    Keys outside `columns` are dropped; missing keys are written empty.
    """

    def __init__(self, file_path: str | Path, columns: Optional[list[str]] = None):
        self.file_path = Path(file_path)
        self.columns = columns or MetricsCollector.kpi_names()
        self.rows_written = 0
        self.file_path.parent.mkdir(parents=True, exist_ok=True)

    def _write(self, rows: Iterable[dict], mode: str) -> None:
        new_file = mode == "w" or not self.file_path.exists() or self.file_path.stat().st_size == 0
        with open(self.file_path, mode, newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=self.columns, extrasaction="ignore")
            if new_file:
                writer.writeheader()
            for row in rows:
                writer.writerow(row)
                self.rows_written += 1

    def log_row(self, kpi_dict: dict) -> None:
        self._write([kpi_dict], "a")

    def log_all(self, kpi_list: list[dict]) -> None:
        """Replace the file with the given rows."""
        self.rows_written = 0
        self._write(kpi_list, "w")

    def read_back(self) -> list[dict]:
        """Rows as string-valued dicts; empty if nothing was written yet."""
        if not self.file_path.exists():
            return []
        with open(self.file_path, newline="", encoding="utf-8") as f:
            return list(csv.DictReader(f))
