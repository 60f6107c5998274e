# flake8: noqa E501

import json
import logging
from datetime import datetime
from gettext import gettext as _
from pathlib import Path

COMMAND_DESCRIPTION = _("Bake progress regions and a saved-by footer onto an image")

logger = logging.getLogger(__name__)


def load_regions(path: Path):
    from floorplan_annotation.core.annotation import Region

    data = json.loads(Path(path).read_text())
    if isinstance(data, dict):
        data = data.get("regions", [])
    return [Region.from_dict(item) for item in data]


def command(subparser):
    subparser.add_argument("image", type=Path)
    subparser.add_argument(
        "regions",
        type=Path,
        help=_("JSON file with a list of regions (x, y, w, h, surface_width, surface_height)"),
    )
    subparser.add_argument("-o", "--output", dest="output", type=Path, required=True)
    subparser.add_argument("-r", "--recorder", dest="recorder", type=str, required=True)
    subparser.add_argument(
        "--saved-at",
        dest="saved_at",
        type=datetime.fromisoformat,
        default=None,
        help=_("Timestamp for the footer in ISO format, defaults to now"),
    )

    def handle(args):
        from floorplan_annotation.config import load_config
        from floorplan_annotation.core.errors import ExportError
        from floorplan_annotation.core.export import encode_png, export_regions

        cfg = load_config()
        regions = load_regions(args.regions)
        try:
            raster = export_regions(
                args.image, regions, args.recorder, args.saved_at, cfg
            )
        except ExportError as e:
            logger.error(_("Export failed: {reason}").format(reason=e.reason))
            return 1
        args.output.write_bytes(encode_png(raster))
        logger.info(
            _("Wrote {count} regions to '{output}'").format(
                count=len(regions), output=args.output
            )
        )
        return 0

    return handle
