"""
Batch entry point: put a hat on every face in one image or a folder of images.

    hatter-cli photo.jpg -o out/
    hatter-cli data/party_photos -o out/ --debug
"""
import argparse
import os
import logging
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from ..models.errors import DegenerateLandmarks, HatterError, NoFaceFound
from ..pipeline.hat_pipeline import HatPipeline
from ..services.export_service import ExportService
from ..services.image_service import ImageService

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="hatter-cli", description="Overlay a hat on every detected face.")
    parser.add_argument("input", type=Path, help="Image file or folder of images")
    parser.add_argument("-o", "--output-dir", type=Path,
                        default=Path(os.getenv("HATTED_DIR_PATH", "data/hatted")),
                        help="Where <name>-hatted.png files are written")
    parser.add_argument("--debug", action="store_true",
                        help="Draw bounding boxes, landmarks and brim anchors on the output")
    parser.add_argument("--recursive", action="store_true", help="Descend into sub-folders")
    return parser.parse_args(argv)


def run(args: argparse.Namespace, pipeline: HatPipeline = None,
        image_service: ImageService = None, export_service: ExportService = None) -> int:
    """Returns the number of images that could not be hatted."""
    pipeline = pipeline or HatPipeline()
    image_service = image_service or ImageService()
    export_service = export_service or ExportService()

    pipeline.prepare()

    if args.input.is_dir():
        images = image_service.stream_gallery(args.input, recursive=args.recursive)
    else:
        images = [image_service.load(args.input)]

    failures = 0
    for image in images:
        name = image.path.name if image.path else "image"
        try:
            scene = pipeline.process(image)
            pixels = pipeline.export(debug_visible=args.debug)
        except (NoFaceFound, DegenerateLandmarks) as err:
            logger.warning(f"{name}: no usable face ({err})")
            failures += 1
            continue
        except HatterError as err:
            logger.error(f"{name}: {type(err).__name__}: {err}")
            failures += 1
            continue
        except Exception:
            logger.exception(f"{name}: unexpected error, skipping")
            failures += 1
            continue
        out_path = export_service.save(pixels, args.output_dir / export_service.export_filename(name))
        logger.info(f"{name}: {len(scene.placements)} hat(s) -> {out_path}")
        pipeline.reset()

    return failures


def main(argv=None) -> int:
    # --- Centralized Logging Configuration ---
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
        datefmt='%H:%M:%S'
    )
    failures = run(parse_args(argv))
    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
