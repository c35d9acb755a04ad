from .landmarks import LandmarksRepository
from . import models

__all__ = ["LandmarksRepository", "models"]
