import numpy as np
from typing import Optional, Tuple

from utils.exceptions import DataError


def make_moons(n_samples: int = 50, noise: float = 0.1, rng: Optional[np.random.Generator] = None,
               shuffle: bool = True) -> Tuple[np.ndarray, np.ndarray]:
    """
    Generate two interleaving half circles.

    Args:
        n_samples: Number of points on each moon
        noise: Standard deviation of the Gaussian noise added to every coordinate
        rng: Random generator used for noise and shuffling
        shuffle: Whether to shuffle the samples

    Returns:
        X of shape (2 * n_samples, 2) and y of shape (2 * n_samples,) with
        labels -1 for the outer moon and +1 for the inner moon
    """
    if n_samples < 1:
        raise DataError(f"n_samples must be positive, got {n_samples}", details={'n_samples': n_samples})
    if noise < 0:
        raise DataError(f"noise must be non-negative, got {noise}", details={'noise': noise})
    rng = rng if rng is not None else np.random.default_rng()

    angles = np.arange(n_samples) * np.pi / n_samples
    outer = np.stack([np.cos(angles), np.sin(angles)], axis=1)
    inner = np.stack([1.0 - np.cos(angles), 1.0 - np.sin(angles) - 0.5], axis=1)

    X = np.concatenate([outer, inner]) + rng.normal(0.0, noise, size=(2 * n_samples, 2))
    y = np.concatenate([-np.ones(n_samples), np.ones(n_samples)])

    if shuffle:
        indices = rng.permutation(2 * n_samples)
        X, y = X[indices], y[indices]
    return X, y


def train_test_split(X: np.ndarray, y: np.ndarray, test_size: float = 0.2,
                     random_state: int = None) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """
    Split data into train and test sets.

    Args:
        X: Input features
        y: Target labels
        test_size: Proportion of data for testing
        random_state: Random seed for reproducibility

    Returns:
        X_train, X_test, y_train, y_test
    """
    if len(X) != len(y):
        raise DataError(f"X has {len(X)} samples but y has {len(y)}")
    if not 0.0 <= test_size < 1.0:
        raise DataError(f"test_size must be in [0, 1), got {test_size}", details={'test_size': test_size})

    rng = np.random.default_rng(random_state)

    n_samples = len(X)
    n_test = int(n_samples * test_size)

    indices = rng.permutation(n_samples)
    test_indices = indices[:n_test]
    train_indices = indices[n_test:]

    return X[train_indices], X[test_indices], y[train_indices], y[test_indices]
