"""
Training configuration for the reorder-risk classifier.

Options arrive as a loose mapping (JSON body, CLI) in camelCase or
snake_case. Unknown keys are ignored; recognized keys with invalid values
raise TrainingConfigError.
"""

import math
from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from ..errors import TrainingConfigError

# Per-layer activation tags
ACTIVATIONS = ('relu', 'sigmoid', 'linear')

# Optimizers that step per mini-batch inside each epoch
OPTIMIZERS = ('adam', 'sgd')

# The output is one sigmoid unit trained on binary cross-entropy
LOSS_FUNCTIONS = ('binaryCrossentropy', 'binary_crossentropy', 'log_loss')

OPTION_ALIASES = {
    'hiddenLayers': 'hidden_layers',
    'epochs': 'epochs',
    'shuffleEachEpoch': 'shuffle_each_epoch',
    'shuffle': 'shuffle_each_epoch',
    'optimizer': 'optimizer',
    'lossFunction': 'loss_function',
    'loss': 'loss_function',
    'learningRate': 'learning_rate',
    'batchSize': 'batch_size',
    'randomState': 'random_state',
    'seed': 'random_state',
}


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class LayerSpec:
    """One hidden layer."""
    units: int
    activation: str = 'relu'

    def __post_init__(self):
        if not _is_int(self.units) or self.units < 1:
            raise TrainingConfigError(f"Layer units must be a positive integer, got {self.units!r}")
        if self.activation not in ACTIVATIONS:
            raise TrainingConfigError(
                f"Unsupported activation {self.activation!r}; expected one of {list(ACTIVATIONS)}"
            )

    @classmethod
    def from_option(cls, option: Any) -> 'LayerSpec':
        if isinstance(option, LayerSpec):
            return option
        if not isinstance(option, Mapping) or 'units' not in option:
            raise TrainingConfigError(f"Hidden layer must be a mapping with 'units', got {option!r}")
        return cls(units=option['units'], activation=option.get('activation', 'relu'))


DEFAULT_HIDDEN_LAYERS = (LayerSpec(12, 'relu'), LayerSpec(8, 'relu'))


@dataclass(frozen=True)
class TrainingConfig:
    """
    Hyperparameters for one training run.

    Default architecture: 3 inputs -> 12 relu -> 8 relu -> 1 sigmoid output,
    60 epochs of Adam with per-epoch shuffling.
    """
    hidden_layers: Tuple[LayerSpec, ...] = DEFAULT_HIDDEN_LAYERS
    epochs: int = 60
    shuffle_each_epoch: bool = True
    optimizer: str = 'adam'
    loss_function: str = 'binaryCrossentropy'
    learning_rate: float = 0.001
    batch_size: int = 32
    random_state: Optional[int] = None

    def __post_init__(self):
        if not _is_int(self.epochs) or self.epochs < 1:
            raise TrainingConfigError(f"epochs must be a positive integer, got {self.epochs!r}")
        if not isinstance(self.shuffle_each_epoch, bool):
            raise TrainingConfigError("shuffleEachEpoch must be a boolean")
        if self.optimizer not in OPTIMIZERS:
            raise TrainingConfigError(
                f"Unsupported optimizer {self.optimizer!r}; expected one of {list(OPTIMIZERS)}"
            )
        if self.loss_function not in LOSS_FUNCTIONS:
            raise TrainingConfigError(f"Unsupported loss function {self.loss_function!r}")
        if (
            isinstance(self.learning_rate, bool)
            or not isinstance(self.learning_rate, (int, float))
            or not math.isfinite(self.learning_rate)
            or self.learning_rate <= 0
        ):
            raise TrainingConfigError(f"learningRate must be a positive number, got {self.learning_rate!r}")
        if not _is_int(self.batch_size) or self.batch_size < 1:
            raise TrainingConfigError(f"batchSize must be a positive integer, got {self.batch_size!r}")
        if self.random_state is not None and not _is_int(self.random_state):
            raise TrainingConfigError(f"randomState must be an integer, got {self.random_state!r}")

    @property
    def activations(self) -> Tuple[str, ...]:
        return tuple(layer.activation for layer in self.hidden_layers)

    @property
    def hidden_layer_sizes(self) -> Tuple[int, ...]:
        return tuple(layer.units for layer in self.hidden_layers)

    @classmethod
    def from_options(cls, options: Optional[Mapping[str, Any]] = None) -> 'TrainingConfig':
        """
        Build a config from a loose options mapping.

        Args:
            options: camelCase or snake_case keys; unknown keys are ignored

        Returns:
            Validated TrainingConfig
        """
        if options is None:
            return cls()
        if isinstance(options, TrainingConfig):
            return options
        if not isinstance(options, Mapping):
            raise TrainingConfigError(f"Training options must be a mapping, got {type(options).__name__}")

        known = set(OPTION_ALIASES.values())
        kwargs: Dict[str, Any] = {}
        for key, value in options.items():
            name = OPTION_ALIASES.get(key, key)
            if name in known:
                kwargs[name] = value

        if 'hidden_layers' in kwargs:
            layers = kwargs['hidden_layers']
            if isinstance(layers, (str, bytes)) or not isinstance(layers, Sequence):
                raise TrainingConfigError("hiddenLayers must be a list of {units, activation}")
            kwargs['hidden_layers'] = tuple(LayerSpec.from_option(layer) for layer in layers)

        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result['hidden_layers'] = [asdict(layer) for layer in self.hidden_layers]
        return result
