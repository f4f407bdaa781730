"""Training runner for the two-moons classification task."""
import json
import numpy as np
from pathlib import Path
from typing import Dict, Any, List, Optional, Tuple

from scalargrad import MLP, Node, SGD, HingeLoss, l2_penalty, make_moons
from utils.error_handlers import ErrorContext
from utils.logging_config import get_logger
from .config import TrainingConfig
from .checkpoint import CheckpointManager


class MoonsTrainer:
    """
    Trains an MLP to separate the two moons with a max-margin loss plus L2
    regularization, using full-batch SGD and a linearly decaying learning rate.
    """

    def __init__(self, config: TrainingConfig, data: Optional[Tuple[np.ndarray, np.ndarray]] = None):
        self.config = config.validate()
        self.logger = get_logger(self.__class__.__name__)
        self.rng = np.random.default_rng(config.seed)

        if data is None:
            data = make_moons(config.n_samples, config.noise, rng=self.rng)
        self.X, self.y = data

        self.model = MLP(2, list(config.hidden_sizes) + [1], activation=config.activation, rng=self.rng)
        self.optimizer = SGD(self.model.parameters(), lr=config.learning_rate)
        self.loss_fn = HingeLoss()
        self.checkpoint_manager = (
            CheckpointManager(config.checkpoint_dir, config.name) if config.checkpoint_dir else None
        )

        # Results tracking
        self.results: Dict[str, Any] = {
            'losses': [],
            'accuracies': [],
            'best_accuracy': -float('inf'),
            'best_step': 0
        }

    def predict(self, point) -> float:
        """Raw score for one point; the sign gives the predicted moon."""
        return self.model(list(point))[0].data

    def compute_loss(self, X: np.ndarray, y: np.ndarray) -> Tuple[Node, float]:
        """Returns the regularized loss node and the accuracy over ``X``."""
        scores = [self.model(list(x))[0] for x in X]
        loss = self.loss_fn(scores, list(y)) + l2_penalty(self.model.parameters(), self.config.alpha)
        accuracy = float(np.mean([(s.data > 0) == (label > 0) for s, label in zip(scores, y)]))
        return loss, accuracy

    def train_step(self, step: int) -> Tuple[float, float]:
        loss, accuracy = self.compute_loss(self.X, self.y)

        self.optimizer.zero_grad()
        loss.backward()
        self.optimizer.lr = self.config.learning_rate_at(step)
        self.optimizer.step()

        return loss.data, accuracy

    def run(self) -> Dict[str, Any]:
        """
        Run the training loop.

        Returns:
            Dictionary with per-step losses and accuracies and the best step
        """
        with ErrorContext(f"train {self.config.name}"):
            self.logger.info(f"Training {self.model!r} on {len(self.X)} samples "
                             f"for {self.config.steps} steps")
            for step in range(self.config.steps):
                loss, accuracy = self.train_step(step)

                self.results['losses'].append(loss)
                self.results['accuracies'].append(accuracy)
                if accuracy > self.results['best_accuracy']:
                    self.results['best_accuracy'] = accuracy
                    self.results['best_step'] = step

                if step % self.config.log_every == 0:
                    self.logger.info(f"Step {step}, loss {loss:.6f}, accuracy {accuracy:.2%}")

                if self.checkpoint_manager and step % self.config.save_every == 0:
                    self.checkpoint_manager.save_checkpoint(
                        step=step,
                        model_state=self.model.state_dict(),
                        metrics={'loss': loss, 'accuracy': accuracy}
                    )
                    self.checkpoint_manager.cleanup_old_checkpoints(self.config.keep_last_n)

        self.logger.info(f"Best accuracy {self.results['best_accuracy']:.2%} "
                         f"(step {self.results['best_step']})")
        return self.results

    def decision_boundary(self, steps: int = 15, extent: float = 2.0) -> str:
        """
        ASCII map of the classifier over [-extent, extent]^2, top row first:
        '-' where the inner moon is predicted and '*' for the outer moon.
        """
        rows: List[str] = []
        for i in range(steps, -steps - 1, -1):
            y = extent * i / steps
            row = []
            for s in range(-steps, steps + 1):
                x = extent * s / steps
                row.append('-' if self.predict((x, y)) > 0 else '*')
            rows.append(' '.join(row))
        return '\n'.join(rows)

    def save_results(self, filepath: str):
        """Save training results to JSON."""
        Path(filepath).parent.mkdir(parents=True, exist_ok=True)

        with open(filepath, 'w') as f:
            json.dump({'config': self.config.to_dict(), 'results': self.results}, f, indent=2)

        self.logger.info(f"Results saved to {filepath}")
