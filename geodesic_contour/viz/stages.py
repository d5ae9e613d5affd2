"""
Figuras estáticas de las etapas de una segmentación por contorno activo geodésico.

Proporciona funciones para mostrar la imagen suavizada, el potencial de
bordes, el level set inicial y el contorno final sobre la imagen original.
"""

from typing import Optional, Tuple
import numpy as np
import matplotlib.pyplot as plt


def plot_segmentation_stages(
    image: np.ndarray,
    result,
    figsize: Tuple[int, int] = (18, 5)
) -> plt.Figure:
    """
    Visualiza las etapas de una segmentación en un grid de 1x4.

    Muestra:
    - Columna 1: Imagen suavizada (difusión anisotrópica)
    - Columna 2: Potencial de bordes P en [0, 1] (con colorbar)
    - Columna 3: Level set inicial de Fast Marching (con colorbar)
    - Columna 4: Imagen original con el contorno inicial y el final

    Args:
        image: Imagen original 2D en escala de grises.
        result: SegmentationResult devuelto por segment().
        figsize: Tamaño de la figura (ancho, alto) en pulgadas.

    Returns:
        fig: Figura de matplotlib con el grid de etapas.

    Raises:
        ValueError: Si la imagen no es 2D.

    Example:
        >>> from geodesic_contour import segment
        >>> from geodesic_contour.viz import plot_segmentation_stages
        >>> result = segment(image, [(81, 56)])
        >>> fig = plot_segmentation_stages(image, result)
        >>> fig.savefig('stages.png')
    """
    if image.ndim != 2:
        raise ValueError(f"La imagen debe ser 2D, tiene shape {image.shape}")

    fig, axes = plt.subplots(1, 4, figsize=figsize)

    edge = result.edge_potential

    # === COLUMNA 1: Imagen suavizada ===
    smoothed = edge.smoothed if edge is not None and edge.smoothed is not None else image
    axes[0].imshow(smoothed, cmap='gray')
    axes[0].set_title('Smoothed', fontsize=12, pad=10)

    # === COLUMNA 2: Potencial de bordes ===
    if edge is not None:
        im = axes[1].imshow(edge.potential, cmap='viridis', vmin=0.0, vmax=1.0)
        plt.colorbar(im, ax=axes[1], fraction=0.046, pad=0.04)
    axes[1].set_title('Edge Potential', fontsize=12, pad=10)

    # === COLUMNA 3: Level set inicial ===
    initial = None
    if result.initial_level_set is not None:
        initial = result.initial_level_set.distances
        # Los puntos Far (+inf) se muestran con el máximo finito
        finite = initial[np.isfinite(initial)]
        shown = np.where(np.isfinite(initial), initial, finite.max() if finite.size else 0.0)
        im = axes[2].imshow(shown, cmap='RdBu_r', interpolation='nearest')
        cbar = plt.colorbar(im, ax=axes[2], fraction=0.046, pad=0.04)
        cbar.set_label('Distance to Contour', fontsize=9)
    axes[2].set_title('Initial Level Set', fontsize=12, pad=10)

    # === COLUMNA 4: Contornos sobre la imagen original ===
    axes[3].imshow(image, cmap='gray')
    if initial is not None:
        axes[3].contour(np.nan_to_num(initial, posinf=1e6), levels=[0.0], colors='yellow', linewidths=1)
    if result.evolution is not None:
        axes[3].contour(result.evolution.level_set, levels=[0.0], colors='red', linewidths=1.5)
        title = f'Contour ({result.evolution.status.value}, {result.evolution.elapsed_iterations} it.)'
    else:
        title = 'Contour'
    axes[3].set_title(title, fontsize=12, pad=10)

    for ax in axes:
        ax.axis('off')

    fig.suptitle('Geodesic Active Contour', fontsize=14, y=0.995)
    plt.tight_layout()

    return fig


def plot_rms_history(result, ax: Optional[plt.Axes] = None) -> plt.Figure:
    """
    Grafica el cambio RMS por iteración de la evolución.

    Args:
        result: EvolutionResult (o SegmentationResult con evolución).
        ax: Ejes donde dibujar. Si None, crea una figura nueva.

    Returns:
        fig: Figura de matplotlib.
    """
    evolution = getattr(result, 'evolution', None) or result
    if ax is None:
        fig, ax = plt.subplots(figsize=(6, 4))
    else:
        fig = ax.figure

    history = evolution.rms_history
    ax.semilogy(np.arange(1, len(history) + 1), history, color='tab:blue')
    ax.set_xlabel('Iteration')
    ax.set_ylabel('RMS change')
    ax.set_title(f'Evolution ({evolution.status.value})', fontsize=12)
    ax.grid(True, alpha=0.3)

    return fig
