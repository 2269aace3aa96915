"""Read-only consistency checker for xv6 filesystem images."""

from .audits import check_image
from .errors import ImageError, Rule, Violation
from .image import Image

__version__ = '1.0.0'

__all__ = ['check_image', 'Image', 'ImageError', 'Rule', 'Violation']
