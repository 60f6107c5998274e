"""
Editor session management.

An EditorSession ties one image to its annotation model, viewport and
interaction state machine for the lifetime of one editing pass:
``open(context) -> ... -> close()``. Nothing here is process-global.
"""

import abc
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from functools import partial
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from ...config import get_default_config
from ..errors import ExportError, SessionError
from ..export import encode_png, export_markers, export_regions
from .events import AnnotationEvent, EventEmitter, EventType
from .interaction import InteractionStateMachine, ToolMode
from .state import AnnotationModel, Marker
from .viewport import ViewportController

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EditorContext:
    """Read-only inputs supplied by the host before the editor opens."""

    image: Any
    company: str = ""
    branch: str = ""
    recorder: str = ""


@dataclass(frozen=True)
class ExportArtifact:
    """An encoded export raster and its suggested file name."""

    data: bytes
    filename: str
    width: int
    height: int


@dataclass(frozen=True)
class SaveResult:
    persisted: bool
    artifact: ExportArtifact
    records: Tuple[Dict[str, Any], ...] = field(default_factory=tuple)


class RecordStore(abc.ABC):
    """
    Contract of the host's backing store.

    Retry policy, schema and transport belong to the implementation.
    """

    @abc.abstractmethod
    def save(self, records: Sequence[Dict[str, Any]]) -> bool:
        """Persist records, returning whether the store accepted them."""

    @abc.abstractmethod
    def fetch(self, query: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Return records whose fields match every key of the query."""


class InMemoryRecordStore(RecordStore):
    """Record store kept in a list, for tests and offline use."""

    def __init__(self):
        self.records: List[Dict[str, Any]] = []

    def save(self, records):
        self.records.extend(dict(record) for record in records)
        return True

    def fetch(self, query):
        return [
            dict(record)
            for record in self.records
            if all(record.get(k) == v for k, v in query.items())
        ]


def surface_size_for(image) -> Tuple[int, int]:
    """Default surface size: the decoded image's own pixel size."""
    if isinstance(image, np.ndarray) and image.ndim >= 2:
        return (image.shape[1], image.shape[0])
    raise SessionError("A surface size is required for encoded images")


class EditorSession:
    """
    Manages the state and logic of one image editing session.

    This class handles:
    - Session lifecycle (open, close)
    - Wiring of model, viewport and interaction state machine
    - Snapshotting the marker batch for persistence and export
    - Event emission for host updates

    The session is UI-agnostic - it emits events that host components
    can listen to, rather than directly manipulating UI elements.
    """

    def __init__(self, cfg=None):
        """
        Initialize editor session.

        Args:
            cfg: Engine configuration, defaults to get_default_config()
        """
        self.cfg = cfg if cfg is not None else get_default_config()
        self.events = EventEmitter()

        self.context: Optional[EditorContext] = None
        self.model: Optional[AnnotationModel] = None
        self.viewport: Optional[ViewportController] = None
        self.interaction: Optional[InteractionStateMachine] = None

        self._busy = False

    @property
    def is_open(self) -> bool:
        return self.context is not None

    @property
    def busy(self) -> bool:
        """True while an export render is running."""
        return self._busy

    @property
    def tool_mode(self) -> ToolMode:
        return self._require_open().interaction.tool_mode

    @property
    def zoom_percent(self) -> int:
        return self._require_open().viewport.zoom_percent

    def open(self, context: EditorContext, surface_size=None):
        """
        Start editing an image.

        Args:
            context: Image and host identity for this session
            surface_size: (width, height) of the display surface at
                scale 1, defaults to the image's pixel size
        """
        if self.is_open:
            self.close()
        if surface_size is None:
            surface_size = surface_size_for(context.image)

        self.context = context
        self.model = AnnotationModel(self.events)
        self.viewport = ViewportController.from_config(self.cfg)
        self.interaction = InteractionStateMachine.from_config(
            self.model, self.viewport, surface_size, self.cfg, events=self.events
        )
        self._busy = False

        logger.info(
            f"Opened editor for {context.company}/{context.branch} "
            f"by {context.recorder or 'unknown'}"
        )
        self.events.emit(
            AnnotationEvent(
                EventType.SESSION_OPENED,
                {"surface_size": self.interaction.surface_size},
            )
        )
        return self

    def close(self):
        """Discard the in-memory session."""
        if not self.is_open:
            return
        num_markers = len(self.model.markers)
        self.context = None
        self.model = None
        self.viewport = None
        self.interaction = None
        self._busy = False

        logger.info(f"Closed editor session with {num_markers} markers")
        self.events.emit(
            AnnotationEvent(EventType.SESSION_CLOSED, {"num_markers": num_markers})
        )

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def snapshot(self) -> Tuple[Marker, ...]:
        return self._require_open().model.snapshot()

    def suggested_filename(self, template: str) -> str:
        context = self._require_open().context
        return template.format(
            company=context.company, branch=context.branch, recorder=context.recorder
        )

    def export_markers(self, markers: Optional[Sequence[Marker]] = None) -> ExportArtifact:
        """
        Render the marker export.

        Args:
            markers: Snapshot to bake, taken now when omitted

        Raises:
            DecodeError: If the image cannot be rasterized
            CapacityError: If the image is too large to process
        """
        kind, render, filename = self._marker_job(markers)
        self._started(kind)
        try:
            raster, data = _render(render)
        except ExportError as e:
            self._failed(kind, e)
            raise
        return self._ready(kind, raster, data, filename)

    def export_regions(self, saved_at: Optional[datetime] = None) -> ExportArtifact:
        """Render the region overlay export with its footer."""
        kind, render, filename = self._region_job(saved_at)
        self._started(kind)
        try:
            raster, data = _render(render)
        except ExportError as e:
            self._failed(kind, e)
            raise
        return self._ready(kind, raster, data, filename)

    async def export_markers_async(self, markers=None) -> ExportArtifact:
        """Render the marker export off the event loop."""
        return await self._export_async(*self._marker_job(markers))

    async def export_regions_async(self, saved_at=None) -> ExportArtifact:
        """Render the region overlay export off the event loop."""
        return await self._export_async(*self._region_job(saved_at))

    def save(self, store: RecordStore) -> SaveResult:
        """
        Persist the marker batch and render its export.

        The batch is snapshotted once; the same snapshot goes to the store
        and into the raster. A refused or failed save leaves the model as
        it was.
        """
        self._require_open()
        markers = self.model.snapshot()
        records = tuple(marker.to_record(self.context) for marker in markers)

        try:
            persisted = bool(store.save(list(records)))
        except Exception as e:
            logger.warning(f"Persisting {len(records)} markers failed: {e}")
            self.events.emit(
                AnnotationEvent(EventType.SAVE_FAILED, {"error": str(e)})
            )
            raise

        if persisted:
            self.events.emit(
                AnnotationEvent(EventType.SAVE_COMPLETED, {"num_records": len(records)})
            )
        else:
            logger.warning(f"Store refused {len(records)} marker records")
            self.events.emit(
                AnnotationEvent(EventType.SAVE_FAILED, {"error": "refused"})
            )

        artifact = self.export_markers(markers)
        return SaveResult(persisted=persisted, artifact=artifact, records=records)

    def _marker_job(self, markers):
        self._require_open()
        if markers is None:
            markers = self.model.snapshot()
        else:
            markers = tuple(markers)
        filename = self.suggested_filename(self.cfg.naming.marker_template)
        render = partial(export_markers, self.context.image, markers, self.cfg)
        return "markers", render, filename

    def _region_job(self, saved_at):
        self._require_open()
        if saved_at is None:
            saved_at = datetime.now()
        filename = self.suggested_filename(self.cfg.naming.overlay_template)
        render = partial(
            export_regions,
            self.context.image,
            self.model.region_snapshot(),
            self.context.recorder,
            saved_at,
            self.cfg,
        )
        return "regions", render, filename

    async def _export_async(self, kind, render, filename) -> ExportArtifact:
        if self._busy:
            raise SessionError("An export is already running")
        interaction = self.interaction
        self._busy = True
        interaction.enabled = False
        self._started(kind)
        try:
            loop = asyncio.get_running_loop()
            raster, data = await loop.run_in_executor(None, _render, render)
        except ExportError as e:
            self._failed(kind, e)
            raise
        finally:
            self._busy = False
            interaction.enabled = True
        return self._ready(kind, raster, data, filename)

    def _started(self, kind: str):
        self.events.emit(AnnotationEvent(EventType.EXPORT_STARTED, {"kind": kind}))

    def _failed(self, kind: str, error: ExportError):
        logger.warning(f"Export of {kind} failed: {error.reason}")
        self.events.emit(
            AnnotationEvent(
                EventType.EXPORT_FAILED,
                {"kind": kind, "error": error.reason, "error_type": type(error).__name__},
            )
        )

    def _ready(self, kind: str, raster: np.ndarray, data: bytes, filename: str):
        height, width = raster.shape[:2]
        artifact = ExportArtifact(data=data, filename=filename, width=width, height=height)
        logger.info(f"Exported {kind} as {filename} ({width}x{height})")
        self.events.emit(
            AnnotationEvent(
                EventType.EXPORT_READY,
                {"kind": kind, "data": data, "filename": filename},
            )
        )
        return artifact

    def _require_open(self) -> "EditorSession":
        if not self.is_open:
            raise SessionError("No image loaded")
        return self


def _render(render):
    raster = render()
    return raster, encode_png(raster)
