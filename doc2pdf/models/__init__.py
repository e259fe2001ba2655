
from .conversion import ConversionRequest

__all__ = [
    "ConversionRequest",
]
