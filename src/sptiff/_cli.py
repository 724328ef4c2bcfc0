"""Command-line interface for sptiff."""

from __future__ import annotations

import argparse
import logging
import sys

from sptiff._errors import DatasetNotFoundError
from sptiff._settings import get_settings
from sptiff._storage import SinglePlaneTiffSeries


def print_dataset_info(path: str) -> None:
    """Print a summary of the dataset at `path`.

    Parameters
    ----------
    path : str
        Root directory of the dataset.
    """
    store = SinglePlaneTiffSeries.open(path)
    summary = store.summary_metadata
    max_indices = store.get_max_indices()

    print(f"Dataset: {store.path}")
    print(f"  Images: {store.get_num_images()}")
    print(f"  Multi-position: {store.is_multi_position}")
    print(f"  Axes: {', '.join(store.get_axes())}")
    for axis in max_indices.axes:
        print(f"    {axis}: {max_indices[axis] + 1}")

    channels = summary.channel_names or list(store.channel_names)
    if channels:
        print(f"  Channels: {', '.join(channels)}")
    positions = {k: v for k, v in store.position_names.items() if v}
    if positions:
        names = ", ".join(f"{k}={v}" for k, v in sorted(positions.items()))
        print(f"  Positions: {names}")

    summary_fields = summary.model_dump(mode="json", exclude_none=True)
    if summary_fields:
        print("  Summary:")
        for key, value in summary_fields.items():
            print(f"    {key}={value}")

    image = store.get_any_image()
    if image is not None:
        print(
            f"  Image size: {image.width}x{image.height} "
            f"({image.pixel_type.name}, {image.bytes_per_pixel} bytes per pixel, "
            f"{image.num_components} components)"
        )


def info_command(args: argparse.Namespace) -> int:
    """Execute the info subcommand.

    Parameters
    ----------
    args : argparse.Namespace
        Parsed command-line arguments

    Returns
    -------
    int
        Exit code (0 for success, 1 if no dataset was found, 2 for other errors)
    """
    try:
        print_dataset_info(args.path)
        return 0
    except DatasetNotFoundError as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"✗ Error: {e}", file=sys.stderr)
        return 2


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI.

    Parameters
    ----------
    argv : list[str] | None
        Command-line arguments (defaults to sys.argv[1:])

    Returns
    -------
    int
        Exit code
    """
    parser = argparse.ArgumentParser(
        prog="sptiff",
        description="CLI tools for single-plane TIFF series datasets",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Show log messages (-v for info, -vv for debug)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    info_parser = subparsers.add_parser(
        "info",
        help="Print a summary of a dataset",
    )
    info_parser.add_argument(
        "path",
        help="Root directory of the dataset",
    )
    info_parser.set_defaults(func=info_command)

    args = parser.parse_args(argv)

    level = get_settings().log_level
    if args.verbose:
        level = "DEBUG" if args.verbose > 1 else "INFO"
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    # Show help if no command specified
    if not hasattr(args, "func"):
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
