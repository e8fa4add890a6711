"""Blend-shape (morph target) sources"""

from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .logging import get_logger


DEFAULT_MORPH_AMPLIFIER = 0.01


class BlendShapeSet:
    """
    Named blend-shape weights on one mesh.

    Weights use the 0-100 convention of most DCC tools; the sampler scales
    them into the 0-1 range written to motion files.
    """

    def __init__(self, mesh_name: str, shape_names: Sequence[str], weights=None):
        self.mesh_name = mesh_name
        self.shape_names: List[str] = list(shape_names)
        self.weights = np.zeros(len(self.shape_names))
        if weights is not None:
            self.set_weights(weights)

    def __len__(self) -> int:
        return len(self.shape_names)

    def index(self, name: str) -> Optional[int]:
        try:
            return self.shape_names.index(name)
        except ValueError:
            return None

    def set_weight(self, name: str, weight: float) -> None:
        i = self.index(name)
        if i is None:
            raise KeyError(f"{self.mesh_name} has no blend shape {name!r}")
        self.weights[i] = float(weight)

    def set_weights(self, weights) -> None:
        weights = np.asarray(weights, dtype=np.float64)
        if weights.shape != (len(self.shape_names),):
            raise ValueError(
                f"Expected {len(self.shape_names)} weights for {self.mesh_name}, got {weights.shape}"
            )
        self.weights = weights.copy()


class MorphSampler:
    """
    Collects morph names from several meshes and samples their weights.

    A name appearing on more than one mesh is read from the first mesh
    that declares it.
    """

    def __init__(self, sets: Iterable[BlendShapeSet] = (), amplifier: float = DEFAULT_MORPH_AMPLIFIER):
        self.logger = get_logger("core.morphs")
        self.amplifier = amplifier
        self._sources: List[Tuple[BlendShapeSet, int]] = []
        self._names: List[str] = []

        seen: Dict[str, str] = {}
        for shape_set in sets:
            for i, name in enumerate(shape_set.shape_names):
                if name in seen:
                    self.logger.debug(
                        f"Morph {name!r} on {shape_set.mesh_name} shadowed by {seen[name]}"
                    )
                    continue
                seen[name] = shape_set.mesh_name
                self._names.append(name)
                self._sources.append((shape_set, i))

    @property
    def names(self) -> List[str]:
        return list(self._names)

    def __len__(self) -> int:
        return len(self._names)

    def sample(self) -> np.ndarray:
        """Current weights of every collected morph, amplified."""
        values = np.empty(len(self._sources))
        for k, (shape_set, i) in enumerate(self._sources):
            values[k] = shape_set.weights[i] * self.amplifier
        return values
