"""Fractal Tones - command-line entry point.

Loads an image, replays a file of movement samples against it and prints the
tones that would be played.

Usage:
  python app.py photo.jpg --method kmeans --k 6 --samples walk.txt
  python app.py photo.jpg --preview preview.png
"""

import argparse
import logging
import sys
from pathlib import Path

from config_manager import ConfigManager
from logging_utils import setup_logging
from models import QuantizationMethod, ToneSettings
from tone_engine import InvalidImageError, ToneSession


def read_samples(path: str) -> "list[list[float]]":
    """Parse movement samples, one per line.

    A line holds either a single magnitude or an "x y z" acceleration
    triple (comma or whitespace separated). Blank lines and # comments are
    skipped.
    """
    handle = sys.stdin if path == "-" else open(path, "r")
    samples = []
    try:
        for line_number, line in enumerate(handle, start=1):
            line = line.split("#", 1)[0].strip()
            if not line:
                continue
            fields = line.replace(",", " ").split()
            if len(fields) not in (1, 3):
                raise ValueError(f"line {line_number}: expected 1 or 3 values, got {len(fields)}")
            samples.append([float(value) for value in fields])
    finally:
        if handle is not sys.stdin:
            handle.close()
    return samples


def main(argv: "list[str] | None" = None) -> int:
    """Run the headless tone pipeline."""
    parser = argparse.ArgumentParser(
        description="Turn an image into tones triggered by movement samples."
    )
    parser.add_argument("image", help="Image file to build tones from")
    parser.add_argument("--k", type=int, default=None, help="Palette size (1-256)")
    parser.add_argument(
        "--method",
        choices=[method.value for method in QuantizationMethod],
        default=None,
        help="Quantization method",
    )
    parser.add_argument(
        "--threshold-slider",
        type=float,
        default=None,
        help="Movement threshold as a 0-1 slider value (0 = 1 ft, 1 = 200 ft)",
    )
    parser.add_argument(
        "--samples",
        default=None,
        help="File of movement magnitudes or x y z accelerations ('-' for stdin)",
    )
    parser.add_argument("--preview", default=None, help="Write the quantized preview image here")
    parser.add_argument(
        "--save-settings",
        action="store_true",
        help="Load and persist settings in ~/.fractal_tones_config.json",
    )
    parser.add_argument("--log-file", default=None, help="Also write a rotating debug log")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    setup_logging(logging.DEBUG if args.verbose else logging.WARNING, args.log_file)

    config_manager = ConfigManager() if args.save_settings else None
    settings = config_manager.load() if config_manager else ToneSettings()
    if args.k is not None:
        settings.k = args.k
    if args.method is not None:
        settings.method = QuantizationMethod(args.method)
    if args.threshold_slider is not None:
        settings.threshold_slider = args.threshold_slider

    session = ToneSession(settings=settings, config_manager=config_manager, threaded=False)
    session.set_threshold_slider(settings.threshold_slider)

    try:
        result = session.load_image(args.image)
    except InvalidImageError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not result.applied:
        print(f"Error: image could not be processed ({result.status.value})", file=sys.stderr)
        return 1

    print(
        f"Palette: {result.palette_size} tones from "
        f"{result.unique_color_count} unique colors"
    )
    if result.warning is not None:
        print(f"Warning: {result.warning.message}")
    print(f"Threshold: {session.threshold_feet:.2f} feet")

    if args.preview:
        preview = session.preview_image()
        if preview is not None:
            preview.save(Path(args.preview))
            print(f"Saved preview to {args.preview}")

    if args.samples:
        try:
            samples = read_samples(args.samples)
        except (OSError, ValueError) as e:
            print(f"Error: could not read samples: {e}", file=sys.stderr)
            session.shutdown()
            return 1

        session.start()
        for values in samples:
            if len(values) == 3:
                play = session.feed_acceleration(*values)
            else:
                play = session.feed_sample(values[0])
            if play is not None:
                frequency = session.frequency_for(play.tone_index)
                print(
                    f"{play.lifetime_feet:9.2f} ft  tone {play.tone_index:3d}  "
                    f"{frequency:7.2f} Hz"
                )
        session.stop()

    session.shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(main())
