# enigma/containers/__init__.py
from enigma.containers.container import Container

__all__ = ["Container"]
