"""
Command line interface

Usage:
    orbmatch detect IMAGE_A -o features.json [--crop X Y W H]
    orbmatch match features.json IMAGE_B [--crop X Y W H] [-o matches.png]
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from orbmatch.config import load_config
from orbmatch.coordinates.crop import CropRect
from orbmatch.core import FeatureProcessor
from orbmatch.errors import FeatureError
from orbmatch.utils.io_handler import load_image, save_image
from orbmatch.utils.logger import create_session_log_file, setup_logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="orbmatch",
        description="Export ORB features from an image region and match them against another image."
    )
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    detect = sub.add_parser("detect", help="Detect features on Image A and export them")
    detect.add_argument("image", help="Image A path")
    detect.add_argument("-o", "--output", default="features.json", help="Feature file to write")
    detect.add_argument("--crop", nargs=4, type=int, metavar=("X", "Y", "W", "H"),
                        help="Region of interest in image pixels")
    detect.add_argument("--nfeatures", type=int, help="Maximum number of features")

    match = sub.add_parser("match", help="Match a feature file against Image B")
    match.add_argument("features", help="Feature file from the detect command")
    match.add_argument("image", help="Image B path")
    match.add_argument("--crop", nargs=4, type=int, metavar=("X", "Y", "W", "H"),
                       help="Region of interest in Image B")
    match.add_argument("--image-a", help="Image A, drawn on the left of the visualization")
    match.add_argument("--ratio", type=float, help="Ratio test threshold in (0, 1)")
    match.add_argument("--ransac", type=float, help="RANSAC reprojection threshold in pixels")
    match.add_argument("-o", "--output", help="Write the side-by-side visualization here")
    match.add_argument("--json", dest="json_output", help="Write the match summary here")
    return parser


def _crop(values: Optional[List[int]]) -> Optional[CropRect]:
    return CropRect(*values) if values else None


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    config = load_config(args.config)
    log_dir = config["logging"].get("log_dir")
    logger = setup_logger(
        "orbmatch",
        logging.DEBUG if args.verbose else config["logging"]["level"],
        create_session_log_file(log_dir) if log_dir else None
    )

    if args.command == "detect" and args.nfeatures:
        config["orb"]["nfeatures"] = args.nfeatures

    processor = FeatureProcessor(config)

    try:
        if args.command == "detect":
            result = processor.detect(args.image, _crop(args.crop))
            if result["status"] == "failed":
                return 1
            with open(args.output, "w") as f:
                json.dump(result["features"], f, indent=2)
            print(f"keypoints: {result['detection']['keypoints']}")
            print(f"Features saved to: {args.output}")
            return 0

        image_a = load_image(args.image_a) if args.image_a else None
        result = processor.match(args.features, args.image, _crop(args.crop),
                                 ratio=args.ratio, ransac_threshold=args.ransac,
                                 image_a=image_a)
        if result["status"] == "failed" and "matching" not in result:
            return 1

        summary = result["matching"]
        print(f"matches: {summary['matches']}")
        print(f"inliers: {summary['inliers']}")
        H = summary["homography"]
        print("H: " + ("(none)" if H is None else str(H)))

        if args.output:
            save_image(result["visualization"], args.output)
            print(f"Visualization saved to: {args.output}")
        if args.json_output:
            summary_doc = {k: v for k, v in result.items() if k != "visualization"}
            with open(args.json_output, "w") as f:
                json.dump(summary_doc, f, indent=2)
        return 0
    except (FeatureError, ValueError, OSError) as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
