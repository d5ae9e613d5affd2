"""
Command line interface.

Usage:
    geodesic-contour input.png output.png seedX seedY InitialDistance \\
        Sigma SigmoidAlpha SigmoidBeta PropagationScaling [options]

Example:
    geodesic-contour BrainProtonDensitySlice.png out.png 81 114 5.0 1.0 -0.5 3.0 2.0
"""

import argparse
import logging
import sys
from typing import List, Optional

from PIL import UnidentifiedImageError

from .edge_potential import EdgePotentialConfig
from .errors import SegmentationError
from .image_io import load_image, save_mask, write_intermediates
from .level_set import EvolutionConfig
from .logging_config import setup_logging
from .narrow_band import NarrowBandConfig
from .segmentation import SegmentationConfig, segment

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Argument parser of the geodesic-contour command."""
    parser = argparse.ArgumentParser(
        prog="geodesic-contour",
        description="Geodesic active contour segmentation from a seed point"
    )
    parser.add_argument("input", help="Input image")
    parser.add_argument("output", help="Output mask image")
    parser.add_argument("seed_x", type=int, help="Seed column")
    parser.add_argument("seed_y", type=int, help="Seed row")
    parser.add_argument("initial_distance", type=float, help="Radius of the initial contour")
    parser.add_argument("sigma", type=float, help="Gaussian scale of the gradient magnitude")
    parser.add_argument("sigmoid_alpha", type=float, help="Sigmoid width (negative)")
    parser.add_argument("sigmoid_beta", type=float, help="Sigmoid centre")
    parser.add_argument("propagation_scaling", type=float, help="Weight of the inflation term")
    parser.add_argument("--curvature-scaling", type=float, default=1.0)
    parser.add_argument("--advection-scaling", type=float, default=1.0)
    parser.add_argument("--maximum-iterations", type=int, default=800)
    parser.add_argument("--maximum-rms-error", type=float, default=0.02)
    parser.add_argument("--bandwidth", type=float, default=3.0, help="Narrow band half width")
    parser.add_argument("--write-intermediates", metavar="DIR",
                        help="Write smoothed, gradient, potential and distance map images to DIR")
    parser.add_argument("--figure", metavar="PATH", help="Save a figure of the stages")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--log-file", metavar="PATH", help="Also log every iteration to a file")
    return parser


def build_config(args: argparse.Namespace) -> SegmentationConfig:
    """Segmentation configuration from parsed arguments."""
    return SegmentationConfig(
        initial_distance=args.initial_distance,
        edge_potential=EdgePotentialConfig(
            sigma=args.sigma,
            alpha=args.sigmoid_alpha,
            beta=args.sigmoid_beta
        ),
        evolution=EvolutionConfig(
            propagation_scaling=args.propagation_scaling,
            curvature_scaling=args.curvature_scaling,
            advection_scaling=args.advection_scaling,
            maximum_iterations=args.maximum_iterations,
            maximum_rms_error=args.maximum_rms_error,
            band=NarrowBandConfig(bandwidth=args.bandwidth)
        )
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO, log_file=args.log_file)

    try:
        config = build_config(args)
        image = load_image(args.input)
    except (SegmentationError, FileNotFoundError, UnidentifiedImageError) as e:
        logger.error("%s", e)
        return 1

    # Seeds are given as (x, y); arrays are indexed (row, column)
    result = segment(image, [(args.seed_y, args.seed_x)], config)

    if args.write_intermediates:
        write_intermediates(result, args.write_intermediates)

    print()
    print(f"Max. no. iterations: {config.evolution.maximum_iterations}")
    print(f"Max. RMS error: {config.evolution.maximum_rms_error:g}")
    print()
    for line in result.report():
        print(line)

    if args.figure and result.edge_potential is not None:
        import matplotlib
        matplotlib.use("Agg")
        from .viz import plot_segmentation_stages
        fig = plot_segmentation_stages(image, result)
        fig.savefig(args.figure, dpi=100)
        logger.info("Wrote %s", args.figure)

    if not result.succeeded:
        return 1

    save_mask(result.mask, args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
