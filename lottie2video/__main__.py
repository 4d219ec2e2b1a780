"""
Command-line interface for the lottie2video render pipeline
"""
import argparse
import json
import logging
import sys
from pathlib import Path

from . import __version__
from .config import CONCURRENCY, EXPORT_DIR, ConversionConfig, StageTimeouts
from .exceptions import ConverterError
from .formatting import print_error, print_header, print_stage
from .logging import configure_logging
from .pipeline import process_file
from .utils import check_dependencies

def parse_args(argv=None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        description="Render Lottie animations to MP4, GIF and WebP"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Set logging level (default from LOTTIE2VIDEO_LOG_LEVEL)"
    )
    parser.add_argument(
        "-f", "--formats",
        default="mp4",
        help="Comma-separated output formats: mp4, gif, webp (default: %(default)s)"
    )
    parser.add_argument(
        "-j", "--concurrency",
        type=int,
        default=CONCURRENCY,
        help="Number of parallel render workers (default: %(default)s)"
    )
    parser.add_argument("--width", type=int, default=None,
                        help="Viewport width when the animation declares none")
    parser.add_argument("--height", type=int, default=None,
                        help="Viewport height when the animation declares none")
    parser.add_argument("--scale", type=float, default=None,
                        help="Device scale factor for captured frames")
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Overall time limit for one conversion in seconds"
    )
    parser.add_argument(
        "--json",
        dest="json_output",
        action="store_true",
        help="Print the result as JSON on stdout"
    )
    parser.add_argument(
        "input",
        type=Path,
        help="Lottie JSON file"
    )
    parser.add_argument(
        "output_dir",
        type=Path,
        nargs="?",
        default=EXPORT_DIR,
        help="Directory for the exported artifacts (default: %(default)s)"
    )
    return parser.parse_args(argv)

def build_config(args) -> ConversionConfig:
    overrides = {
        "concurrency": args.concurrency,
        "formats": args.formats,
        "output_dir": args.output_dir,
        "timeouts": StageTimeouts(pipeline=args.timeout),
    }
    if args.width is not None:
        overrides["default_width"] = args.width
    if args.height is not None:
        overrides["default_height"] = args.height
    if args.scale is not None:
        overrides["device_scale_factor"] = args.scale
    return ConversionConfig.from_environment(**overrides)

def main(argv=None):
    """Main entry point"""
    args = parse_args(argv)
    configure_logging(args.log_level)

    log = logging.getLogger("lottie2video")
    print_header(f"lottie2video v{__version__}")

    if not args.input.is_file():
        log.error("Input %s does not exist", args.input)
        return 1

    try:
        config = build_config(args)
        check_dependencies([config.ffmpeg_path, config.ffprobe_path])
        result = process_file(args.input, config)
    except KeyboardInterrupt:
        log.warning("Conversion interrupted by user")
        return 130
    except ConverterError as e:
        print_error(str(e))
        log.debug("Conversion failed", exc_info=True)
        return 1
    except Exception as e:
        log.exception("Conversion failed: %s", e)
        return 1

    if args.json_output:
        print(json.dumps(result.to_dict(), indent=2))
    if result.errors:
        log.warning("%d of %d formats failed", len(result.errors),
                    len(result.errors) + len(result.artifacts))
        return 2
    print_stage(f"Converted {args.input.name}")
    return 0

if __name__ == "__main__":
    sys.exit(main())
