from . import assembly

__all__ = ["assembly"]
