"""
Feed-forward reorder-risk network.

A torch ``nn.Sequential`` stack built from the configured hidden layers,
each with its own activation, ending in one sigmoid unit trained on binary
cross-entropy. ``partial_fit`` runs exactly one pass over the rows in the
order given; the caller owns shuffling.
"""

from typing import Optional, Sequence

import numpy as np
import torch
import torch.nn as nn
import torch.optim as optim

from .options import LayerSpec

ACTIVATION_MODULES = {
    'relu': nn.ReLU,
    'sigmoid': nn.Sigmoid,
    'linear': nn.Identity,
}


class ReorderNetwork(nn.Module):
    """Binary classifier: inputs -> hidden layers -> 1 sigmoid unit."""

    def __init__(
        self,
        input_size: int,
        hidden_layers: Sequence[LayerSpec],
        optimizer: str = 'adam',
        learning_rate: float = 0.001,
        batch_size: int = 32,
    ):
        super().__init__()
        layers = []
        width = input_size
        for layer in hidden_layers:
            layers.append(nn.Linear(width, layer.units))
            layers.append(ACTIVATION_MODULES[layer.activation]())
            width = layer.units
        layers.append(nn.Linear(width, 1))
        layers.append(nn.Sigmoid())
        self.net = nn.Sequential(*layers)

        self.batch_size = batch_size
        self.criterion = nn.BCELoss()
        if optimizer == 'sgd':
            self.optimizer = optim.SGD(self.parameters(), lr=learning_rate)
        else:
            self.optimizer = optim.Adam(self.parameters(), lr=learning_rate)
        self.loss_: Optional[float] = None

    def forward(self, x):
        return self.net(x)

    def partial_fit(self, X: np.ndarray, y: np.ndarray) -> 'ReorderNetwork':
        """One epoch of mini-batch updates; sets ``loss_`` to the mean batch loss."""
        features = torch.as_tensor(X, dtype=torch.float32)
        targets = torch.as_tensor(y, dtype=torch.float32).reshape(-1, 1)

        self.train()
        total = 0.0
        for start in range(0, len(features), self.batch_size):
            batch_X = features[start:start + self.batch_size]
            batch_y = targets[start:start + self.batch_size]

            self.optimizer.zero_grad()
            loss = self.criterion(self(batch_X), batch_y)
            loss.backward()
            self.optimizer.step()

            total += loss.item() * len(batch_X)

        self.loss_ = total / len(features)
        return self

    def predict_proba(self, X: np.ndarray) -> np.ndarray:
        """Columns are P(label 0) and P(label 1), as in scikit-learn."""
        self.eval()
        with torch.no_grad():
            positive = self(torch.as_tensor(X, dtype=torch.float32)).numpy().astype(float).ravel()
        return np.column_stack([1.0 - positive, positive])

    def predict(self, X: np.ndarray) -> np.ndarray:
        return (self.predict_proba(X)[:, 1] > 0.5).astype(int)

    def weights_finite(self) -> bool:
        return all(bool(torch.isfinite(param).all()) for param in self.parameters())
