"""
Visualización de las etapas de la segmentación.
"""

from .stages import plot_segmentation_stages, plot_rms_history

__all__ = ['plot_segmentation_stages', 'plot_rms_history']
