"""Training configuration management."""
from dataclasses import dataclass, field, asdict, fields
from typing import Dict, Any, List, Optional
import yaml
import json

from utils.exceptions import ConfigurationError


@dataclass
class TrainingConfig:
    """Configuration for training an MLP on the two-moons dataset."""
    # Experiment metadata
    name: str = "moons"
    description: str = ""

    # Data configuration
    n_samples: int = 50
    noise: float = 0.1

    # Model configuration
    hidden_sizes: List[int] = field(default_factory=lambda: [16, 16])
    activation: str = "relu"  # relu, tanh

    # Training configuration
    steps: int = 100
    learning_rate: float = 1.0
    final_learning_rate: float = 0.1
    alpha: float = 1e-4  # L2 regularization strength

    # Checkpointing
    checkpoint_dir: Optional[str] = None
    save_every: int = 10
    keep_last_n: int = 5

    # Logging
    log_every: int = 1

    # Reproducibility
    seed: Optional[int] = 42

    def validate(self) -> 'TrainingConfig':
        """Raise ConfigurationError if any value is out of range."""
        problems = {}
        if self.n_samples < 1:
            problems['n_samples'] = self.n_samples
        if self.noise < 0:
            problems['noise'] = self.noise
        if not self.hidden_sizes or any(s < 1 for s in self.hidden_sizes):
            problems['hidden_sizes'] = self.hidden_sizes
        if self.activation not in ('relu', 'tanh'):
            problems['activation'] = self.activation
        if self.steps < 1:
            problems['steps'] = self.steps
        if self.learning_rate <= 0 or self.final_learning_rate <= 0:
            problems['learning_rate'] = (self.learning_rate, self.final_learning_rate)
        if self.alpha < 0:
            problems['alpha'] = self.alpha
        if self.log_every < 1 or self.save_every < 1 or self.keep_last_n < 1:
            problems['intervals'] = (self.log_every, self.save_every, self.keep_last_n)
        if problems:
            raise ConfigurationError(
                f"Invalid training configuration: {', '.join(problems)}",
                details=problems
            )
        return self

    def learning_rate_at(self, step: int) -> float:
        """Linearly decays from ``learning_rate`` towards ``final_learning_rate``."""
        fraction = step / self.steps
        return self.learning_rate - (self.learning_rate - self.final_learning_rate) * fraction

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return asdict(self)

    def to_yaml(self, filepath: str):
        """Save config to YAML file."""
        with open(filepath, 'w') as f:
            yaml.safe_dump(self.to_dict(), f, default_flow_style=False)

    def to_json(self, filepath: str):
        """Save config to JSON file."""
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'TrainingConfig':
        """Create config from dictionary, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(config_dict) - known)
        if unknown:
            raise ConfigurationError(
                f"Unknown configuration keys: {', '.join(unknown)}",
                details={'unknown': unknown}
            )
        return cls(**config_dict).validate()

    @classmethod
    def from_yaml(cls, filepath: str) -> 'TrainingConfig':
        """Load config from YAML file."""
        with open(filepath, 'r') as f:
            config_dict = yaml.safe_load(f) or {}
        return cls.from_dict(config_dict)

    @classmethod
    def from_json(cls, filepath: str) -> 'TrainingConfig':
        """Load config from JSON file."""
        with open(filepath, 'r') as f:
            config_dict = json.load(f)
        return cls.from_dict(config_dict)
