"""Storage of image planes as a series of single-plane TIFF files.

Layout of a dataset rooted at `D`::

    D/
    ├── metadata.txt                  # single-position datasets
    ├── img_channel000_time000000000_z000.tif
    └── ...

or, for multi-position datasets, one subdirectory per stage position::

    D/
    ├── Pos0/
    │   ├── metadata.txt
    │   └── img_channel000_position000_time000000000_z000.tif
    └── Pos1/
        └── ...

Datasets written by 1.x acquisition software use file names of the form
`img_<time>_<channel name>_<z>.tif` and `"FrameKey-<t>-<c>-<z>"` metadata
records; they are read (never written) by this module.
"""

from __future__ import annotations

import json
import logging
from enum import Enum, auto
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from sptiff._codec import read_plane, to_memory_layout, write_plane
from sptiff._coords import ALLOWED_AXES, STAGE_POSITION, Coords
from sptiff._errors import (
    DatasetExistsError,
    DatasetNotFoundError,
    MissingPositionNameError,
    PositionNameConflictError,
    UnsupportedPixelTypeError,
)
from sptiff._filenames import current_file_name, legacy_file_name
from sptiff._image import Image
from sptiff._index import DatasetIndex
from sptiff._metadata import ImageMetadata, SummaryMetadata
from sptiff._metadata_stream import METADATA_FILE_NAME, MetadataStreams
from sptiff._parse import MetadataFormat, detect_format, read_metadata_file
from sptiff._settings import get_settings

if TYPE_CHECKING:
    from collections.abc import Iterable
    from os import PathLike
    from types import TracebackType

    from typing_extensions import Self

    from sptiff._pixel_type import PixelType

__all__ = ["LoadState", "SinglePlaneTiffSeries"]

logger = logging.getLogger(__name__)

SUMMARY_KEY = "Summary"
COORDS_PREFIX = "Coords-"
METADATA_PREFIX = "Metadata-"
FRAME_KEY_PREFIX = "FrameKey-"


class LoadState(Enum):
    NOT_LOADED = auto()
    RECOVERING = auto()
    READY = auto()

    def __str__(self) -> str:
        return self.name


class SinglePlaneTiffSeries:
    """Image storage in which every file holds a single 2D image plane.

    A dataset is either writable (newly created) or read-only (opened from
    disk) for its whole lifetime.  Prefer the `create()` and `open()`
    constructors.

    Parameters
    ----------
    directory : str | PathLike
        Root directory of the dataset.
    new_dataset : bool
        If True, create a new writable dataset; `directory` must not exist yet
        (it is created on the first write).  If False, open the existing
        dataset at `directory` read-only and index all of its images.
    summary_metadata : SummaryMetadata | None, optional
        Summary metadata of a new dataset.  Ignored when opening, where the
        summary is read from disk.
    json_indent : int | None, optional
        Indentation of JSON written to `metadata.txt` and embedded in TIFF
        files.  Defaults to the `SPTIFF_JSON_INDENT` setting.

    Raises
    ------
    DatasetExistsError
        If `new_dataset` is True and `directory` already exists.
    DatasetNotFoundError
        If `new_dataset` is False and `directory` contains neither a
        `metadata.txt` nor any position subdirectory.

    Examples
    --------
    >>> import numpy as np
    >>> from sptiff import Coords, Image, SinglePlaneTiffSeries
    >>> with SinglePlaneTiffSeries.create("example_series") as store:
    ...     for t in range(3):
    ...         pixels = np.zeros((32, 32), dtype=np.uint16)
    ...         store.put_image(Image(pixels, Coords(time=t)))
    >>> SinglePlaneTiffSeries.open("example_series").get_max_index("time")
    2
    """

    def __init__(
        self,
        directory: str | PathLike,
        new_dataset: bool,
        *,
        summary_metadata: SummaryMetadata | None = None,
        json_indent: int | None = None,
    ) -> None:
        self._root = Path(directory)
        self._writable = new_dataset
        if self._writable and self._root.exists():
            raise DatasetExistsError(f"Directory at {self._root} already exists")

        self._summary = summary_metadata or SummaryMetadata()
        self._json_indent = (
            get_settings().json_indent if json_indent is None else json_indent
        )
        self._index = DatasetIndex()
        self._streams = MetadataStreams()
        # pixel type fields added to the Summary record of each position
        self._summary_extras: dict[int, dict[str, Any]] = {}
        # start date taken from the first image when the summary has none
        self._derived_start_date: str | None = None
        self._multi_position = True
        self._state = LoadState.NOT_LOADED

        if self._writable:
            self._state = LoadState.READY
        else:
            self._open_existing()

    @classmethod
    def create(
        cls,
        directory: str | PathLike,
        summary_metadata: SummaryMetadata | None = None,
        *,
        json_indent: int | None = None,
    ) -> Self:
        """Create a new, writable dataset at `directory`."""
        return cls(
            directory,
            True,
            summary_metadata=summary_metadata,
            json_indent=json_indent,
        )

    @classmethod
    def open(cls, directory: str | PathLike) -> Self:
        """Open the existing dataset at `directory` read-only.

        All metadata streams are parsed and every image is indexed before this
        returns; pixel data is only read by `get_image()`.
        """
        return cls(directory, False)

    def __repr__(self) -> str:
        mode = "writable" if self._writable else "read-only"
        return (
            f"<{self.__class__.__name__} {str(self._root)!r} ({mode}): "
            f"{len(self._index)} images>"
        )

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    # ------------------------ Properties --------------------------

    @property
    def path(self) -> Path:
        """Root directory of the dataset."""
        return self._root

    @property
    def name(self) -> str:
        return self._root.name

    @property
    def is_writable(self) -> bool:
        return self._writable

    @property
    def is_multi_position(self) -> bool:
        """Whether images live in one subdirectory per stage position."""
        return self._multi_position

    @property
    def state(self) -> LoadState:
        return self._state

    @property
    def summary_metadata(self) -> SummaryMetadata:
        return self._summary

    @property
    def channel_names(self) -> tuple[str, ...]:
        """Channel names of a 1.x dataset, in channel index order."""
        return self._index.channel_names

    @property
    def position_names(self) -> dict[int, str]:
        """Names bound to each stage position index."""
        return self._index.position_names

    def set_summary_metadata(self, summary: SummaryMetadata) -> None:
        """Replace the summary metadata.

        On a writable dataset the new summary is also appended to every open
        metadata stream; readers use the last `Summary` record of a stream.
        """
        self._summary = summary
        if not self._writable:
            return
        for position in self._streams:
            stream = self._streams.get(position)
            if stream is not None and stream.is_open:
                summary_json = self._summary_record(position)
                self._streams.write_record(position, SUMMARY_KEY, summary_json)

    # ------------------------ Write path --------------------------

    def put_image(self, image: Image) -> None:
        """Store `image` as a TIFF file and record its metadata.

        Images with axes other than channel, time, z and position, images with
        an unsupported pixel layout, and images sent to a read-only dataset are
        logged and ignored.  Failures writing files are logged, but the image
        is still indexed.

        Raises
        ------
        MissingPositionNameError
            If the image's stage position is greater than 0 but it carries no
            position name.
        PositionNameConflictError
            If the image's stage position was previously written with a
            different position name.
        """
        coords = image.coords
        bad_axes = [axis for axis in coords.axes if axis not in ALLOWED_AXES]
        if bad_axes:
            logger.error(
                "Single-plane TIFF series storage cannot handle images with "
                "axis %r. Allowed axes are %s",
                bad_axes[0],
                sorted(ALLOWED_AXES),
            )
            return
        if not self._writable:
            logger.error("Attempted to add an image to a read-only dataset")
            return

        metadata = image.metadata or ImageMetadata()
        if coords.stage_position > 0 and metadata.position_name is None:
            raise MissingPositionNameError(
                f"Image {image!r} does not have a valid position name metadata value"
            )
        try:
            pixel_type = image.pixel_type
        except UnsupportedPixelTypeError as e:
            logger.error("Cannot store image at %r: %s", coords, e)
            return

        position_dir = self._position_dir(coords, metadata.position_name)
        prefix = f"{position_dir}/" if position_dir else ""
        file_name = prefix + current_file_name(coords)

        # fails before anything touches the disk
        self._bind_position(coords, position_dir)

        position = max(0, coords.stage_position)
        if position not in self._streams:
            self._open_stream(position, position_dir, image, metadata, pixel_type)

        self._write_image(image, metadata, pixel_type, position, file_name)
        self._index.add(coords, file_name)

    def freeze(self) -> None:
        """Finalize the dataset: close all metadata streams, refuse new images."""
        if self._writable:
            self._streams.close_all()
        self._writable = False

    def close(self) -> None:
        if self._state is not LoadState.RECOVERING:
            self.freeze()

    # ------------------------ Read path --------------------------

    def has_image(self, coords: Coords) -> bool:
        return coords in self._index

    def get_image(self, coords: Coords) -> Image | None:
        """Load the image at `coords` from disk.

        Returns None (and logs the reason) if the image is unknown, the file
        cannot be decoded, its pixel layout is not supported, or its embedded
        metadata is malformed.
        """
        file_name = self._index.file_name(coords)
        if file_name is None:
            logger.error("Asked for image at %r that we don't know about", coords)
            return None

        path = self._root / file_name
        try:
            plane = read_plane(path)
        except UnsupportedPixelTypeError as e:
            logger.error("Image at %s has an unrecognized pixel layout: %s", path, e)
            return None
        except (OSError, ValueError) as e:
            logger.error("Unable to load image at %s: %s", path, e)
            return None

        metadata: ImageMetadata | None = None
        if plane.info is not None:
            try:
                metadata = ImageMetadata.model_validate_json(plane.info)
            except ValidationError as e:
                logger.error("Unable to parse metadata of image at %s: %s", path, e)
                return None
        else:
            logger.warning("Unable to reconstruct metadata for image at %r", coords)

        return Image(to_memory_layout(plane), coords, metadata)

    def get_any_image(self) -> Image | None:
        coords = self._index.any_coords()
        if coords is None:
            return None
        return self.get_image(coords)

    def get_unordered_image_coords(self) -> Iterable[Coords]:
        return list(self._index)

    def get_images_matching(self, coords: Coords) -> list[Image]:
        """Load every image whose coordinates agree with `coords`.

        Axes not set in `coords` are unconstrained.  Images that fail to load
        are left out.
        """
        images = []
        for match in self._index.matching(coords):
            image = self.get_image(match)
            if image is not None:
                images.append(image)
        return images

    def get_max_index(self, axis: str) -> int:
        """Maximum index stored along `axis`, or -1 if no image has that axis."""
        return self._index.max_index(axis)

    def get_max_indices(self) -> Coords:
        return self._index.max_indices

    def get_num_images(self) -> int:
        return len(self._index)

    def get_axes(self) -> list[str]:
        return self._summary.ordered_axes

    def get_position_name(self, position: int) -> str | None:
        return self._index.position_name(position)

    def get_file_name(self, coords: Coords) -> str | None:
        """Path of the file holding `coords`, relative to the dataset root."""
        return self._index.file_name(coords)

    # ------------------------ Internal: writing --------------------------

    def _position_dir(self, coords: Coords, position_name: str | None) -> str:
        """Subdirectory (relative to the root) holding images at `coords`.

        An image without a position name goes where earlier images at the same
        position went.
        """
        if not self._multi_position or not coords.has_axis(STAGE_POSITION):
            return ""
        if position_name is None:
            position_name = self._index.position_name(coords.stage_position)
        return position_name or ""

    def _bind_position(self, coords: Coords, position_dir: str) -> None:
        position = max(0, coords.stage_position)
        try:
            self._index.bind_position_name(position, position_dir)
        except PositionNameConflictError as e:
            if self._state is not LoadState.RECOVERING:
                raise
            logger.error("Inconsistent position names in %s: %s", self._root, e)

    def _open_stream(
        self,
        position: int,
        position_dir: str,
        image: Image,
        metadata: ImageMetadata,
        pixel_type: PixelType,
    ) -> None:
        if metadata.received_time and self._derived_start_date is None:
            self._derived_start_date = metadata.received_time.split(" ")[0]
        # pixel type information, for readers of older datasets
        extras = {"PixelType": pixel_type.legacy_name, "IJType": pixel_type.ij_type}
        self._summary_extras[position] = extras
        directory = self._root / position_dir if position_dir else self._root
        try:
            summary_json = self._summary_record(position)
            self._streams.open(position, directory, summary_json)
        except OSError as e:
            logger.error("Unable to open metadata stream in %s: %s", directory, e)

    def _write_image(
        self,
        image: Image,
        metadata: ImageMetadata,
        pixel_type: PixelType,
        position: int,
        file_name: str,
    ) -> None:
        path = self._root / file_name
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error("Unable to create save directory %s: %s", path.parent, e)

        metadata = metadata.model_copy(update={"file_name": file_name})
        image_json = self._to_json(
            {
                **image.format_properties(),
                **image.coords.to_json_dict(),
                **metadata.model_dump(mode="json", exclude_none=True),
            }
        )
        interval_ms = self._summary.wait_interval_ms
        try:
            write_plane(
                path,
                image.pixels,
                pixel_type,
                image_json,
                pixel_size_um=metadata.pixel_size_um,
                z_step_um=self._summary.z_step_um,
                frame_interval_s=None if interval_ms is None else interval_ms / 1000,
            )
        except (OSError, ValueError) as e:
            logger.error("Unable to save image file %s: %s", path, e)

        coords_json = self._to_json(image.coords.to_json_dict())
        self._streams.write_record(position, COORDS_PREFIX + file_name, coords_json)
        self._streams.write_record(position, METADATA_PREFIX + file_name, image_json)

    def _summary_record(self, position: int) -> str:
        """JSON of the `Summary` record written to the stream of `position`."""
        summary = self._summary.model_dump(mode="json", exclude_none=True)
        if self._derived_start_date and "StartTime" not in summary:
            summary["StartTime"] = self._derived_start_date
        return self._to_json({**summary, **self._summary_extras.get(position, {})})

    def _to_json(self, obj: Any) -> str:
        return json.dumps(obj, indent=self._json_indent, ensure_ascii=False)

    # ------------------------ Internal: recovery --------------------------

    def _open_existing(self) -> None:
        self._state = LoadState.RECOVERING
        try:
            for position in self._discover_positions():
                self._recover_position(position)
        finally:
            self._state = LoadState.READY
        logger.info(
            "Loaded %d images from %s (max indices %r)",
            len(self._index),
            self._root,
            self._index.max_indices,
        )

    def _discover_positions(self) -> list[str]:
        if (self._root / METADATA_FILE_NAME).exists():
            # the root itself is the only "position"
            self._multi_position = False
            return [""]

        self._multi_position = True
        try:
            positions = sorted(p.name for p in self._root.iterdir() if p.is_dir())
        except OSError:
            positions = []
        if not positions:
            raise DatasetNotFoundError(f"Unable to find dataset at {self._root}")
        return positions

    def _recover_position(self, position: str) -> None:
        result = read_metadata_file(self._root / position / METADATA_FILE_NAME)
        data = result.data
        if data is None:
            logger.error(
                "Couldn't load metadata for position %r in directory %s: %s",
                position,
                self._root,
                result.describe_failure(),
            )
            return

        if SUMMARY_KEY in data:
            self._adopt_summary(data[SUMMARY_KEY])

        metadata_format = detect_format(data)
        if metadata_format is MetadataFormat.UNKNOWN:
            logger.warning(
                "No image records in metadata for position %r in %s",
                position,
                self._root,
            )
        else:
            logger.debug(
                "Reading %s metadata of position %r", metadata_format, position
            )

        for key, value in data.items():
            try:
                resolved = self._resolve_record(position, key, value)
                if resolved is not None:
                    self._recover_image(position, key, *resolved)
            except (ValueError, TypeError, OverflowError) as e:
                logger.error("Ignoring record %r: %s", key, e)

    def _resolve_record(
        self, position: str, key: str, value: Any
    ) -> tuple[Coords, str] | None:
        """Return the coordinates and file name described by one record.

        Records that carry no coordinates (`Summary`, `Metadata-*`, ...) and
        malformed records yield None.
        """
        if key.startswith(COORDS_PREFIX):
            if not isinstance(value, dict):
                logger.error("Ignoring malformed record %r", key)
                return None
            coords = Coords.from_json_dict(value)
            # the file name is derived from the coordinates, not read from the key
            return coords, current_file_name(coords)

        if key.startswith(FRAME_KEY_PREFIX):
            if not isinstance(value, dict):
                logger.error("Ignoring malformed record %r", key)
                return None
            # 1.x streams duplicate the summary inside every record
            if SUMMARY_KEY in value:
                self._adopt_summary(value[SUMMARY_KEY])
            parts = key.split("-")
            try:
                if len(parts) != 4:
                    raise ValueError(f"expected 'FrameKey-<t>-<c>-<z>', got {key!r}")
                time, channel, z = (int(p) for p in parts[1:])
                coords = Coords(time=time, channel=channel, z=z)
            except ValueError as e:
                logger.error("Ignoring record %r: %s", key, e)
                return None
            embedded = Coords.from_json_dict(value)
            if embedded.has_axis(STAGE_POSITION):
                coords = coords.copy_with(position=embedded.stage_position)

            channels = self._index.assign_channel_names(self._root / position)
            return coords, legacy_file_name(coords, channels)

        return None

    def _recover_image(
        self, position: str, key: str, coords: Coords, file_name: str
    ) -> None:
        located = self._locate(position, file_name)
        if located is None and key.startswith(COORDS_PREFIX):
            # current-format metadata next to 1.x file names
            channels = self._index.assign_channel_names(self._root / position)
            if channels:
                located = self._locate(position, legacy_file_name(coords, channels))
        if located is None:
            if position:
                file_name = f"{position}/{file_name}"
            logger.error(
                "For key %s tried to find file at %s but it did not exist",
                key,
                file_name,
            )
        else:
            file_name = located

        if coords.has_axis(STAGE_POSITION) or not position:
            self._bind_position(coords, position)
        # later records for the same coordinates replace earlier ones
        self._index.set_file_name(coords, file_name)
        self._index.update_max_indices(coords)

    def _locate(self, position: str, file_name: str) -> str | None:
        """Find `file_name` at the root or in the position's subdirectory."""
        if (self._root / file_name).exists():
            return file_name
        if position and (self._root / position / file_name).exists():
            return f"{position}/{file_name}"
        return None

    def _adopt_summary(self, value: Any) -> None:
        try:
            self._summary = SummaryMetadata.model_validate(value)
        except ValidationError as e:
            logger.error("Ignoring malformed summary metadata in %s: %s", self._root, e)
