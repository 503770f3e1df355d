"""Command-line entry point: detect the mindmap tree in an SVG file and print it as JSON."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from mapsight.config import settings
from mapsight.engine.config import PipelineConfig
from mapsight.engine.extractor import MindmapExtractor
from mapsight.errors import MindmapError

logger = logging.getLogger("mapsight")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mapsight",
        description="Rebuild the node tree of a rendered mindmap SVG.",
    )
    parser.add_argument("file", type=Path, help="SVG document to analyse")
    parser.add_argument("--root", metavar="ID", help="rebuild the tree around this node id (e.g. node_3)")
    parser.add_argument("--debug", action="store_true", help="print the debug snapshot instead of the tree")
    parser.add_argument(
        "--axis",
        choices=["x", "y"],
        default=settings.mapsight_depth_axis,
        help="coordinate that grows with depth (default: %(default)s)",
    )
    parser.add_argument("--indent", type=int, default=2, help="JSON indentation (default: %(default)s)")
    return parser


def run(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, settings.mapsight_log_level.upper(), logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        stream=sys.stderr,
    )

    config = PipelineConfig(depth_axis=args.axis, level_tolerance=settings.mapsight_level_tolerance)
    extractor = MindmapExtractor(config=config)
    try:
        document = args.file.read_text(encoding="utf-8")
        if args.debug:
            output = extractor.debug_extract(document).to_dict()
        elif args.root:
            extractor.debug_extract(document)
            output = extractor.extract_with_root(args.root).to_dict()
        else:
            output = extractor.detect(document).to_dict()
    except OSError as e:
        print(f"mapsight: cannot read {args.file}: {e}", file=sys.stderr)
        return 1
    except MindmapError as e:
        print(f"mapsight: {e}", file=sys.stderr)
        return 1

    print(json.dumps(output, indent=args.indent or None, ensure_ascii=False))
    return 0


def main() -> None:
    sys.exit(run())
