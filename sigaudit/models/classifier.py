"""
Per-identity signature classifier.

Each identity gets its own small feed-forward network trained to answer
"is this the signature of this person?". Genuine samples are labeled +1,
forgeries -1; the network output lies in (-1, 1) and a positive value
means the signature is accepted.

Network:
--------
    x (feature vector) -> [Linear -> Tanh] x hidden layers -> Linear -> Tanh

Training:
---------
Full-batch backpropagation with momentum SGD on the mean squared error,
for a fixed number of epochs.
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

import numpy as np
import torch
import torch.nn as nn

from sigaudit.errors import (
    ClassificationResult,
    ConfigurationError,
    Score,
    UnknownIdentity,
)
from sigaudit.registers.entry import Entry
from sigaudit.registers.signature import Signature
from sigaudit.skeleton.features import FeatureSet
from sigaudit.utils.config import ClassifierConfig
from sigaudit.utils.io import sanitize_id, sanitize_name


logger = logging.getLogger(__name__)

GENUINE_TARGET = 1.0
FORGED_TARGET = -1.0

Sample = Union[Signature, FeatureSet]


def network_path(entry: Entry, config: Optional[ClassifierConfig] = None) -> Path:
    """
    Artifact path of an identity's network.

    ``{NAME}`` is replaced by the lower-cased name without spaces and commas,
    ``{ID}`` by the ID without asterisks.
    """
    config = config or ClassifierConfig()
    file_name = (
        config.name_template
        .replace("{NAME}", sanitize_name(entry.name))
        .replace("{ID}", sanitize_id(entry.id))
    )
    return Path(config.networks_dir) / (file_name + config.extension)


def _as_signature(sample: Sample) -> Signature:
    if isinstance(sample, FeatureSet):
        return Signature.from_features(sample)
    return sample


def normalize_feature_vectors(*samples: Sample) -> np.ndarray:
    """
    Stack the normalized feature vectors of signatures or feature sets.

    Signatures without features are extracted on demand.

    Returns:
        float32 array of shape (len(samples), vector length)

    Raises:
        ConfigurationError: If the vectors differ in length
    """
    if not samples:
        return np.zeros((0, 0), dtype=np.float32)

    vectors = [_as_signature(sample).feature_vector() for sample in samples]
    lengths = {len(v) for v in vectors}
    if len(lengths) != 1:
        raise ConfigurationError(f"Feature vectors have different lengths: {sorted(lengths)}")

    return np.stack(vectors).astype(np.float32)


def build_network(topology: Sequence[int]) -> nn.Sequential:
    """
    Build a symmetric-sigmoid MLP.

    Args:
        topology: [input width, hidden widths..., output width]
    """
    layers: List[nn.Module] = []
    for in_features, out_features in zip(topology[:-1], topology[1:]):
        layers.append(nn.Linear(in_features, out_features))
        layers.append(nn.Tanh())
    return nn.Sequential(*layers)


class Classifier:
    """
    Classifier bound to a single Entry.

    Attributes:
        entry: Identity whose network is trained and queried
        config: Network, training and artifact settings
    """

    def __init__(self, entry: Entry, config: Optional[ClassifierConfig] = None):
        """
        Initialize classifier.

        Args:
            entry: Identity to classify
            config: Classifier settings

        Raises:
            ConfigurationError: If no hidden layer is configured
        """
        self.entry = entry
        self.config = config or ClassifierConfig()
        self.hidden_layers = list(self.config.hidden_layers)

    @property
    def hidden_layers(self) -> List[int]:
        return self._hidden_layers

    @hidden_layers.setter
    def hidden_layers(self, value: Sequence[int]) -> None:
        if len(value) == 0:
            raise ConfigurationError("Length of hidden layers cannot be zero")
        self._hidden_layers = list(value)

    @property
    def path(self) -> Path:
        return network_path(self.entry, self.config)

    def topology(self, input_width: int) -> List[int]:
        return [input_width] + self.hidden_layers + [1]

    def train(self, genuines: Sequence[Sample], forgeries: Sequence[Sample] = ()) -> Path:
        """
        Train the identity's network and persist it.

        Any previous artifact of the identity is replaced.

        Args:
            genuines: Genuine signatures (or their feature sets)
            forgeries: Forged signatures or feature sets

        Returns:
            Path of the saved artifact
        """
        if len(genuines) == 0:
            raise ConfigurationError("At least one genuine signature is required")

        data = normalize_feature_vectors(*genuines, *forgeries)
        targets = np.full((len(data), 1), FORGED_TARGET, dtype=np.float32)
        targets[:len(genuines)] = GENUINE_TARGET

        if self.config.random_seed is not None:
            torch.manual_seed(self.config.random_seed)

        topology = self.topology(data.shape[1])
        network = build_network(topology)
        optimizer = torch.optim.SGD(
            network.parameters(),
            lr=self.config.learning_rate,
            momentum=self.config.momentum
        )
        loss_fn = nn.MSELoss()

        x = torch.from_numpy(data)
        y = torch.from_numpy(targets)

        network.train()
        loss = None
        for _ in range(self.config.max_iterations):
            optimizer.zero_grad()
            loss = loss_fn(network(x), y)
            loss.backward()
            optimizer.step()

        path = self.path
        if path.exists():
            path.unlink()
        path.parent.mkdir(parents=True, exist_ok=True)
        torch.save({"topology": topology, "state_dict": network.state_dict()}, path)

        logger.info(
            "Trained network for %s on %d samples (final loss %.6f)",
            self.entry.display_name, len(data),
            float(loss.item()) if loss is not None else float("nan")
        )
        return path

    def run(self) -> ClassificationResult:
        """
        Score the entry's own signature.

        Returns:
            Score in (-1, 1), or UnknownIdentity if no network was trained

        Raises:
            ConfigurationError: If the entry is unsigned or the stored
                network expects a different feature vector length
        """
        path = self.path
        if not path.exists():
            logger.info("No network for %s", self.entry.display_name)
            return UnknownIdentity(self.entry.display_name)

        if self.entry.signature is None:
            raise ConfigurationError(f"Entry {self.entry.display_name} has no signature")

        data = normalize_feature_vectors(self.entry.signature)

        artifact = torch.load(path, map_location="cpu")
        topology = list(artifact["topology"])
        if topology[0] != data.shape[1]:
            raise ConfigurationError(
                f"Stored network for {self.entry.display_name} expects {topology[0]} "
                f"features, got {data.shape[1]}"
            )

        network = build_network(topology)
        network.load_state_dict(artifact["state_dict"])
        network.eval()

        with torch.no_grad():
            output = network(torch.from_numpy(data))

        return Score(float(output[0, 0]))
