"""
Run Manager for the Dinosaur Ecosystem Simulator.

Manages the output directory of one headless run:
  - Creates a timestamped run directory under a base output path
  - Saves the config used for the run
  - Owns the per-tick metrics CSV and the snapshot directory
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, TYPE_CHECKING

from src.core.config import SimConfig, save_config
from src.logging.csv_logger import CSVLogger
from src.logging.snapshot import SnapshotManager

if TYPE_CHECKING:
    from src.simulation.engine import SimulationEngine

logger = logging.getLogger(__name__)


class RunManager:
    """
    Manages a single simulation run's output directory.

    Directory structure:
        {base_dir}/{run_name}/
            config.json          copy of the simulation config
            metrics.csv          per-tick KPIs
            snapshots/           engine snapshots (JSON)
                step_000100.json
                ...
            summary.json         written by finalize()

    Attributes:
        run_dir: Path to this run's output directory.
        csv_logger: CSVLogger for metrics.
        snapshot_manager: SnapshotManager for engine snapshots.
    """

    def __init__(
        self,
        config: SimConfig,
        base_dir: Optional[str | Path] = None,
        run_name: Optional[str] = None,
    ):
        """
        Args:
            config: Simulation configuration (saved as config.json).
            base_dir: Base output directory. None = config.run.output_dir.
            run_name: Subdirectory name. None = timestamp plus seed.
        """
        if base_dir is None:
            base_dir = config.run.output_dir
        if run_name is None:
            run_name = f"{datetime.now().strftime('%Y%m%d_%H%M%S')}_seed{config.world.seed}"

        self.run_dir = Path(base_dir) / run_name
        self.run_dir.mkdir(parents=True, exist_ok=True)

        self._config_path = self.run_dir / "config.json"
        save_config(config, self._config_path)

        self.csv_logger = CSVLogger(self.run_dir / "metrics.csv")
        self.snapshot_manager = SnapshotManager(self.run_dir)
        logger.info("Writing run output to %s", self.run_dir)

    @property
    def config_path(self) -> Path:
        return self._config_path

    @property
    def metrics_path(self) -> Path:
        return self.csv_logger.file_path

    @property
    def snapshots_dir(self) -> Path:
        return self.snapshot_manager.snapshot_dir

    def log_tick(self, kpi_dict: dict) -> None:
        """Append a tick's KPIs to the CSV."""
        self.csv_logger.log_row(kpi_dict)

    def save_snapshot(self, engine: SimulationEngine) -> Path:
        return self.snapshot_manager.save(engine)

    def finalize(self, summary: Optional[dict] = None) -> None:
        """Write summary.json if a summary is given."""
        if summary is not None:
            with open(self.run_dir / "summary.json", "w", encoding="utf-8") as f:
                json.dump(summary, f, indent=2, ensure_ascii=False)

    @staticmethod
    def list_runs(base_dir: str | Path) -> list[str]:
        """Sorted names of run directories (those holding a config.json)."""
        base = Path(base_dir)
        if not base.exists():
            return []
        return sorted(
            d.name for d in base.iterdir()
            if d.is_dir() and (d / "config.json").exists()
        )

    def __repr__(self) -> str:
        return f"RunManager(run_dir='{self.run_dir}')"
