# flake8: noqa E501

import json
import logging
from gettext import gettext as _
from pathlib import Path

COMMAND_DESCRIPTION = _("Bake numbered markers from a JSON list onto an image")

logger = logging.getLogger(__name__)


def load_markers(path: Path):
    from floorplan_annotation.core.annotation import Marker

    data = json.loads(Path(path).read_text())
    if isinstance(data, dict):
        data = data.get("markers", [])
    return [Marker.from_dict(item) for item in data]


def command(subparser):
    subparser.add_argument("image", type=Path)
    subparser.add_argument(
        "markers",
        type=Path,
        help=_("JSON file with a list of markers (x, y in percent, label, serial, name, kind)"),
    )
    subparser.add_argument("-o", "--output", dest="output", type=Path, required=True)

    def handle(args):
        from floorplan_annotation.config import load_config
        from floorplan_annotation.core.errors import ExportError, InputError
        from floorplan_annotation.core.export import encode_png, export_markers

        cfg = load_config()
        try:
            markers = load_markers(args.markers)
        except InputError as e:
            logger.error(_("Invalid marker file: {error}").format(error=e))
            return 1
        try:
            raster = export_markers(args.image, markers, cfg)
        except ExportError as e:
            logger.error(_("Export failed: {reason}").format(reason=e.reason))
            return 1
        args.output.write_bytes(encode_png(raster))
        logger.info(
            _("Wrote {count} markers to '{output}'").format(
                count=len(markers), output=args.output
            )
        )
        return 0

    return handle
