"""Classification output postprocessing.

Converts raw classifier logits into a probability distribution with a
numerically stable softmax and extracts ranked predictions.

Tie-break policy: when several classes share the maximal probability the
lowest class index wins, both for top-1 and for ordering within top-k.

Author: Matthew Hong
"""

from dataclasses import dataclass, field
from typing import Sequence, Union

import numpy as np

from classifier_demo.errors import EmptyInputError, InvalidInputShape, NumericInstability

ArrayLike = Union[np.ndarray, Sequence[float]]


@dataclass(frozen=True)
class Prediction:
    """Single ranked prediction.

    Attributes:
        index: Class index into the label list
        probability: Softmax probability [0, 1]
    """

    index: int
    probability: float


@dataclass(frozen=True)
class ClassificationResult:
    """Postprocessed classifier output.

    Attributes:
        probabilities: float32 probability vector, same length as the logits
        prediction: Top-1 prediction
        top_k: Ranked predictions, best first (starts with ``prediction``)
    """

    probabilities: np.ndarray
    prediction: Prediction
    top_k: list[Prediction] = field(default_factory=list)

    @property
    def num_classes(self) -> int:
        return int(self.probabilities.shape[0])


def as_logit_vector(logits: ArrayLike) -> np.ndarray:
    """Validate logits and return them as a 1-D float64 vector.

    A [1, N] batch-of-one output is flattened to [N].

    Raises:
        InvalidInputShape: If logits are neither 1-D nor [1, N]
        EmptyInputError: If there are no logits
        NumericInstability: If any logit is NaN or infinite
    """
    vector = np.asarray(logits, dtype=np.float64)

    if vector.ndim == 2 and vector.shape[0] == 1:
        vector = vector[0]

    if vector.ndim != 1:
        raise InvalidInputShape(
            f"Expected logits with shape [N] or [1, N], got {list(vector.shape)}"
        )

    if vector.size == 0:
        raise EmptyInputError("Cannot apply softmax to an empty logit vector")

    if not np.all(np.isfinite(vector)):
        bad = int(np.count_nonzero(~np.isfinite(vector)))
        raise NumericInstability(f"Logits contain {bad} non-finite value(s)")

    return vector


def _softmax64(logits: ArrayLike) -> np.ndarray:
    vector = as_logit_vector(logits)

    exp_scores = np.exp(vector - vector.max())
    return exp_scores / exp_scores.sum()


def softmax(logits: ArrayLike) -> np.ndarray:
    """Numerically stable softmax.

    p_i = exp(l_i - max(l)) / sum_j exp(l_j - max(l))

    Computed in float64 and returned as float32.

    Args:
        logits: Raw scores, shape [N] or [1, N]

    Returns:
        float32 probability vector of shape [N], summing to 1

    Example:
        >>> softmax([1.0, 2.0, 3.0]).round(4)
        array([0.09  , 0.2447, 0.6652], dtype=float32)
    """
    return _softmax64(logits).astype(np.float32)


def top1(probabilities: np.ndarray) -> Prediction:
    """Return the most probable class; the first maximal index wins ties."""
    if len(probabilities) == 0:
        raise EmptyInputError("Cannot rank an empty probability vector")

    index = int(np.argmax(probabilities))
    return Prediction(index=index, probability=float(probabilities[index]))


def top_k(probabilities: np.ndarray, k: int) -> list[Prediction]:
    """Return the k most probable classes, best first.

    Equal probabilities are ordered by ascending class index.
    """
    if k < 1:
        raise ValueError(f"k must be >= 1, got {k}")

    order = np.argsort(-np.asarray(probabilities), kind="stable")[:k]

    return [Prediction(index=int(i), probability=float(probabilities[i])) for i in order]


class ScorePostprocessor:
    """Turns classifier logits into a ClassificationResult.

    Example:
        >>> result = ScorePostprocessor(top_k=2)([1.0, 2.0, 3.0])
        >>> result.prediction.index
        2
        >>> [p.index for p in result.top_k]
        [2, 1]
    """

    def __init__(self, top_k: int = 5) -> None:
        if top_k < 1:
            raise ValueError(f"top_k must be >= 1, got {top_k}")
        self.top_k = top_k

    def __call__(self, logits: ArrayLike) -> ClassificationResult:
        return self.postprocess(logits)

    def postprocess(self, logits: ArrayLike) -> ClassificationResult:
        """Rank classes on float64 probabilities, then store them as float32.

        Logits closer together than float32 resolution still rank by their
        true order instead of collapsing into a tie.
        """
        probabilities = _softmax64(logits)

        return ClassificationResult(
            probabilities=probabilities.astype(np.float32),
            prediction=top1(probabilities),
            top_k=top_k(probabilities, self.top_k),
        )
