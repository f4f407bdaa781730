from .config import TrainingConfig
from .checkpoint import CheckpointManager
from .runner import MoonsTrainer

__all__ = [
    'TrainingConfig',
    'CheckpointManager',
    'MoonsTrainer',
]
