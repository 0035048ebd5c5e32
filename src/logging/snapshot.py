"""
Snapshot manager for the Dinosaur Ecosystem Simulator.

Saves engine state (occupancy, vegetation, environment) as JSON files for
offline inspection. Snapshots are write-and-inspect only; they are never
loaded back into an engine.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from src.simulation.engine import SimulationEngine


class SnapshotManager:
    """
    Saves and loads engine snapshots as JSON files.

    Each snapshot is saved to: {output_dir}/snapshots/step_{N:06d}.json

    Attributes:
        output_dir: Base output directory for the run.
        include_vegetation: Whether to write the full vegetation grid.
    """

    def __init__(self, output_dir: str | Path, include_vegetation: bool = True):
        self.output_dir = Path(output_dir)
        self.snapshot_dir = self.output_dir / "snapshots"
        self.snapshot_dir.mkdir(parents=True, exist_ok=True)
        self.include_vegetation = include_vegetation

    def _path_for(self, step: int) -> Path:
        return self.snapshot_dir / f"step_{step:06d}.json"

    def save(self, engine: SimulationEngine) -> Path:
        """
        Save a snapshot of the engine's current state.

        Returns:
            Path to the saved snapshot file.
        """
        snapshot = engine.snapshot()
        if not self.include_vegetation:
            snapshot["field"].pop("vegetation", None)

        file_path = self._path_for(engine.current_step)
        with open(file_path, "w", encoding="utf-8") as f:
            json.dump(snapshot, f, ensure_ascii=False, default=_json_default)
        return file_path

    def load(self, step: int) -> dict:
        """
        Load the snapshot written for a step.

        Raises:
            FileNotFoundError: If the snapshot doesn't exist.
        """
        file_path = self._path_for(step)
        if not file_path.exists():
            raise FileNotFoundError(f"Snapshot not found: {file_path}")
        with open(file_path, "r", encoding="utf-8") as f:
            return json.load(f)

    def list_snapshots(self) -> list[int]:
        """Sorted step numbers that have a snapshot."""
        steps = []
        for p in self.snapshot_dir.glob("step_*.json"):
            try:
                steps.append(int(p.stem.split("_")[1]))
            except (IndexError, ValueError):
                continue
        return sorted(steps)


def _json_default(obj: Any) -> Any:
    """JSON serialization fallback for NumPy types."""
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    raise TypeError(f"Object of type {type(obj)} is not JSON serializable")
