"""
Multilayer perceptron used by the neural survival learners.
"""

import torch
import torch.nn as nn
from typing import Sequence


_ACTIVATIONS = {
    'relu': nn.ReLU,
    'elu': nn.ELU,
    'selu': nn.SELU,
    'tanh': nn.Tanh,
    'sigmoid': nn.Sigmoid,
    'leakyrelu': nn.LeakyReLU,
}


class SurvivalMLP(nn.Module):
    """Fully connected network with optional batch norm and dropout."""

    def __init__(
        self,
        input_dim: int,
        num_nodes: Sequence[int] = (32, 32),
        output_dim: int = 1,
        batch_norm: bool = True,
        dropout: float = 0.1,
        activation: str = 'relu',
        output_bias: bool = True
    ):
        """
        Initialize MLP model.

        Args:
            input_dim: Input feature dimension
            num_nodes: Width of each hidden layer
            output_dim: Number of outputs
            batch_norm: Add batch normalization after each hidden layer
            dropout: Dropout probability after each hidden layer
            activation: Name of the hidden activation
            output_bias: Whether the output layer has a bias term
        """
        super(SurvivalMLP, self).__init__()

        if activation not in _ACTIVATIONS:
            raise ValueError(f"Unknown activation: {activation}. "
                             f"Choose from {sorted(_ACTIVATIONS)}")
        if not 0.0 <= dropout <= 1.0:
            raise ValueError("dropout must be in [0, 1]")

        layers = []
        prev_dim = input_dim
        for hidden_dim in num_nodes:
            hidden_dim = int(hidden_dim)
            if hidden_dim < 1:
                raise ValueError("Hidden layers need at least one node")
            layers.append(nn.Linear(prev_dim, hidden_dim))
            layers.append(_ACTIVATIONS[activation]())
            if batch_norm:
                layers.append(nn.BatchNorm1d(hidden_dim))
            if dropout > 0:
                layers.append(nn.Dropout(dropout))
            prev_dim = hidden_dim

        layers.append(nn.Linear(prev_dim, output_dim, bias=output_bias))
        self.layers = nn.Sequential(*layers)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        """Forward pass through the network."""
        return self.layers(x)
