"""
Lectura y escritura de imágenes.

Las imágenes se cargan con PIL y se convierten a escala de grises con
OpenCV. Las salidas intermedias (imagen suavizada, magnitud del gradiente,
potencial de bordes y mapa de distancias inicial) se reescalan a [0, 255]
para poder inspeccionarlas como PNG; los mapas de punto flotante se guardan
además sin pérdida en formato .npy.
"""

from pathlib import Path
from typing import Dict, Union
import logging
import numpy as np
import cv2
from PIL import Image

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def load_image(path: PathLike) -> np.ndarray:
    """
    Carga una imagen como array 2D en escala de grises.

    Args:
        path: Ruta al archivo de imagen (PNG, JPG, ...).

    Returns:
        numpy array float64 con shape (H, W).
        Las imágenes RGB/RGBA se convierten a escala de grises.

    Raises:
        FileNotFoundError: Si el archivo no existe.

    Example:
        >>> img = load_image('BrainProtonDensitySlice.png')
        >>> print(img.shape, img.dtype)  # (217, 181) float64
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Imagen no encontrada: {path}")

    # Cargar imagen usando PIL
    img = Image.open(path)
    if img.mode in ('P', 'LA', '1'):
        img = img.convert('L')
    img_array = np.array(img)

    # Convertir a escala de grises si la imagen tiene canales de color
    if img_array.ndim == 3:
        if img_array.shape[2] == 4:
            img_array = cv2.cvtColor(img_array, cv2.COLOR_RGBA2GRAY)
        else:
            img_array = cv2.cvtColor(img_array, cv2.COLOR_RGB2GRAY)

    logger.debug("Loaded %s: shape=%s dtype=%s", path, img_array.shape, img_array.dtype)
    return img_array.astype(np.float64)


def save_mask(mask: np.ndarray, path: PathLike) -> Path:
    """Guarda una máscara uint8 como imagen (formato según la extensión)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(np.asarray(mask, dtype=np.uint8)).save(path)
    logger.info("Wrote %s", path)
    return path


def rescale_to_uint8(values: np.ndarray) -> np.ndarray:
    """
    Reescala linealmente un campo al rango [0, 255].

    Los valores no finitos (p.ej. puntos Far del mapa de distancias, +inf)
    se asignan al extremo correspondiente; los NaN a 0. Un campo constante
    da una imagen de ceros.
    """
    values = np.asarray(values, dtype=np.float64)
    finite = np.isfinite(values)
    out = np.zeros(values.shape, dtype=np.uint8)
    if not finite.any():
        return out

    low = values[finite].min()
    high = values[finite].max()
    if high > low:
        scaled = (values[finite] - low) / (high - low) * 255.0
        out[finite] = np.clip(np.rint(scaled), 0, 255).astype(np.uint8)
    out[values == np.inf] = 255
    return out


def save_rescaled(values: np.ndarray, path: PathLike) -> Path:
    """Reescala a [0, 255] y guarda como imagen de 8 bits."""
    return save_mask(rescale_to_uint8(values), path)


def save_float_map(values: np.ndarray, path: PathLike) -> Path:
    """Guarda un mapa de punto flotante sin pérdida (.npy)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    np.save(path, np.asarray(values, dtype=np.float64))
    logger.info("Wrote %s", path)
    return path


def write_intermediates(result, output_dir: PathLike, prefix: str = "GeodesicActiveContour") -> Dict[str, Path]:
    """
    Escribe las salidas intermedias de una segmentación.

    Genera, si están disponibles:
    - {prefix}Output1.png: imagen suavizada
    - {prefix}Output2.png: magnitud del gradiente
    - {prefix}Output3.png / .npy: potencial de bordes
    - {prefix}Output4.png / .npy: mapa de distancias inicial (Fast Marching)

    Args:
        result: SegmentationResult con las salidas de cada etapa.
        output_dir: Directorio de salida (se crea si no existe).
        prefix: Prefijo de los nombres de archivo.

    Returns:
        Diccionario {nombre_etapa: ruta} con los archivos escritos.
    """
    output_dir = Path(output_dir)
    written = {}

    edge = result.edge_potential
    if edge is not None:
        if edge.smoothed is not None:
            written['smoothed'] = save_rescaled(edge.smoothed, output_dir / f"{prefix}Output1.png")
        if edge.gradient_magnitude is not None:
            written['gradient_magnitude'] = save_rescaled(
                edge.gradient_magnitude, output_dir / f"{prefix}Output2.png"
            )
        written['edge_potential'] = save_rescaled(edge.potential, output_dir / f"{prefix}Output3.png")
        written['edge_potential_map'] = save_float_map(edge.potential, output_dir / f"{prefix}Output3.npy")

    if result.initial_level_set is not None:
        distances = result.initial_level_set.distances
        written['initial_level_set'] = save_rescaled(distances, output_dir / f"{prefix}Output4.png")
        written['initial_level_set_map'] = save_float_map(distances, output_dir / f"{prefix}Output4.npy")

    return written
