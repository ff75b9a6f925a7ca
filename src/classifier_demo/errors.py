"""Error types raised by the classification pipeline.

Every error derives from ClassifierError, and also from the builtin
exception a caller would naturally catch (ValueError, ArithmeticError), so
existing ``except ValueError`` handlers keep working.

Author: Matthew Hong
"""


class ClassifierError(Exception):
    """Base class for classification pipeline errors."""


class InvalidInputShape(ClassifierError, ValueError):
    """Bitmap or logit input is malformed (wrong rank, channels, dtype or size)."""


class EmptyInputError(InvalidInputShape):
    """Logit vector has no elements."""


class NumericInstability(ClassifierError, ArithmeticError):
    """Non-finite values (NaN or Inf) reached the softmax."""


class ImageDecodeError(ClassifierError, ValueError):
    """Image file or bytes could not be decoded."""


class UnknownProviderError(ClassifierError, ValueError):
    """Requested ONNX Runtime execution provider is not available."""

    def __init__(self, provider: str, available: list[str]) -> None:
        self.provider = provider
        self.available = list(available)
        super().__init__(
            f"Execution provider '{provider}' not available. "
            f"Available providers: {self.available}"
        )
