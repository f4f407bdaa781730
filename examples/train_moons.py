"""Example script: train an MLP to separate the two moons."""
import sys

from experiments import MoonsTrainer, TrainingConfig
from utils.logging_config import LoggerFactory


def main(config_path: str = None):
    LoggerFactory.configure(log_level="INFO")
    config = TrainingConfig.from_yaml(config_path) if config_path else TrainingConfig()

    trainer = MoonsTrainer(config)
    trainer.run()
    print(trainer.decision_boundary())


if __name__ == "__main__":
    main(sys.argv[1] if len(sys.argv) > 1 else None)
