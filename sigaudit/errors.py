"""
Error taxonomy and tagged results for register auditing.

Format, configuration and structural errors abort the current operation
with no partial result. An identity without a trained model is not an
error: classifiers return an explicit ``UnknownIdentity`` value instead.
"""

from dataclasses import dataclass
from typing import Union


class SigauditError(Exception):
    """Base class for all register auditing errors."""
    pass


class FormatError(SigauditError, ValueError):
    """Unsupported pixel format or malformed persisted file."""
    pass


class ConfigurationError(SigauditError, ValueError):
    """Invalid configuration or use of an object in the wrong state."""
    pass


class StructuralError(SigauditError, RuntimeError):
    """Register or grid structure could not be established or matched."""
    pass


@dataclass(frozen=True)
class Score:
    """
    Classifier output for an identity with a trained model.

    Attributes:
        value: Network output in the symmetric sigmoid range (-1, 1)
    """
    value: float

    @property
    def is_known(self) -> bool:
        return True


@dataclass(frozen=True)
class UnknownIdentity:
    """
    Classifier output for an identity that has no persisted model.

    Attributes:
        identity: Human-readable identity description (name and ID)
    """
    identity: str = ""

    @property
    def is_known(self) -> bool:
        return False


ClassificationResult = Union[Score, UnknownIdentity]
