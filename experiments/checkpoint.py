"""Pickled parameter snapshots taken during training."""
import json
import pickle
from pathlib import Path
from typing import Dict, Any, List, Optional

from utils.logging_config import get_logger

logger = get_logger(__name__)

BEST_NAME = "best_checkpoint.pkl"


class CheckpointManager:
    """
    Writes ``Module.state_dict()`` snapshots under ``checkpoint_dir/run_name``.

    Every snapshot is ``checkpoint_step_XXXXXX.pkl`` with its metrics mirrored
    to ``metrics_step_XXXXXX.json``. The snapshot with the highest ``metric``
    is also copied to ``best_checkpoint.pkl`` and survives cleanup.
    """

    def __init__(self, checkpoint_dir: str, run_name: str, metric: str = 'accuracy'):
        self.checkpoint_dir = Path(checkpoint_dir) / run_name
        self.checkpoint_dir.mkdir(parents=True, exist_ok=True)
        self.metric = metric
        self.best_metric = -float('inf')
        self.best_checkpoint_path: Optional[Path] = None

    def _path(self, kind: str, step: int, suffix: str) -> Path:
        return self.checkpoint_dir / f"{kind}_step_{step:06d}{suffix}"

    def save_checkpoint(
        self,
        step: int,
        model_state: List[float],
        metrics: Optional[Dict[str, float]] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> str:
        """
        Save the parameter values of one training step.

        Args:
            step: Training step the values belong to
            model_state: Parameter values, as returned by ``Module.state_dict()``
            metrics: Loss/accuracy of the step
            metadata: Anything else worth keeping with the snapshot

        Returns:
            Path to the saved snapshot
        """
        metrics = metrics or {}
        snapshot = {
            'step': step,
            'model_state': [float(v) for v in model_state],
            'metrics': metrics,
            'metadata': metadata or {},
        }

        path = self._path('checkpoint', step, '.pkl')
        with open(path, 'wb') as f:
            pickle.dump(snapshot, f)
        if metrics:
            with open(self._path('metrics', step, '.json'), 'w') as f:
                json.dump(metrics, f, indent=2)

        score = metrics.get(self.metric)
        if score is not None and score > self.best_metric:
            self.best_metric = score
            self.best_checkpoint_path = path
            with open(self.checkpoint_dir / BEST_NAME, 'wb') as f:
                pickle.dump(snapshot, f)

        logger.debug(f"Saved checkpoint for step {step} to {path}")
        return str(path)

    def load_checkpoint(self, checkpoint_path: Optional[str] = None) -> Dict[str, Any]:
        """Loads a snapshot; without a path, the best one so far."""
        path = Path(checkpoint_path) if checkpoint_path else self.checkpoint_dir / BEST_NAME
        with open(path, 'rb') as f:
            return pickle.load(f)

    def restore(self, model, checkpoint_path: Optional[str] = None) -> int:
        """Loads a snapshot into ``model`` and returns its step."""
        snapshot = self.load_checkpoint(checkpoint_path)
        model.load_state_dict(snapshot['model_state'])
        return snapshot['step']

    def list_checkpoints(self) -> List[str]:
        """Snapshot paths, oldest step first."""
        return [str(p) for p in sorted(self.checkpoint_dir.glob("checkpoint_step_*.pkl"))]

    def cleanup_old_checkpoints(self, keep_last_n: int = 5):
        """Deletes all but the newest ``keep_last_n`` snapshots, sparing the best."""
        paths = [Path(p) for p in self.list_checkpoints()]
        for path in paths[:max(len(paths) - keep_last_n, 0)]:
            if path == self.best_checkpoint_path:
                continue
            path.unlink()
            path.with_name(path.name.replace('checkpoint_', 'metrics_')).with_suffix('.json').unlink(missing_ok=True)
