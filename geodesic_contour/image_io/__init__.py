"""
Lectura y escritura de imágenes para el pipeline de segmentación.
"""

from .io import (
    load_image,
    save_mask,
    rescale_to_uint8,
    save_rescaled,
    save_float_map,
    write_intermediates,
)

__all__ = [
    'load_image',
    'save_mask',
    'rescale_to_uint8',
    'save_rescaled',
    'save_float_map',
    'write_intermediates',
]
