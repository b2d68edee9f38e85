import argparse
import json
import sys

from src.config.settings import settings
from src.core.errors import PromoEngineError
from src.core.library import VideoLibrary
from src.pipeline.manager import VideoGenerationOrchestrator
from src.utils.logger import setup_logging

# Configure Logging
logger = setup_logging(settings.log_level)


def parse_args(argv):
    parser = argparse.ArgumentParser(description="Render a short promotional video for a product.")
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Generate one video and its thumbnail")
    gen.add_argument("--title", required=True)
    gen.add_argument("--price", type=float, required=True)
    gen.add_argument("--platform", default="Hotmart")
    gen.add_argument("--id", default="cli_product")
    gen.add_argument("--description", default=None)
    gen.add_argument("--duration", type=float, default=None, help="Seconds; random within bounds if omitted")
    gen.add_argument("--framerate", type=int, default=None)

    sub.add_parser("list", help="List finished videos")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """
    Main entry point for the Promo Engine.
    """
    args = parse_args(argv if argv is not None else sys.argv[1:])

    if args.command == "list":
        print(json.dumps(VideoLibrary(settings.output_root).list_videos(), indent=2))
        return 0

    product = {
        "id": args.id,
        "title": args.title,
        "price": args.price,
        "platform": args.platform,
        "description": args.description,
    }
    options = {}
    if args.duration is not None:
        options["duration"] = args.duration
    if args.framerate is not None:
        options["framerate"] = args.framerate

    engine = VideoGenerationOrchestrator(settings=settings)
    try:
        artifact = engine.generate(product, options)
    except PromoEngineError as e:
        logger.critical(f"🔥 Video generation failed: {e}")
        if e.artifact is not None:
            print(json.dumps(e.artifact.to_dict(), indent=2))
        return 1

    print(json.dumps(artifact.to_dict(), indent=2))
    return 0


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except KeyboardInterrupt:
        logger.info("Captured KeyboardInterrupt. Exiting...")
