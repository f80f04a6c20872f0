"""Command-line harness for preprocessing images and recognizing their text.

Subcommands:
    preprocess  Write the OCR-normalized version of an image file.
    recognize   Print the text Tesseract finds in an image file.
"""

import argparse
import asyncio
import base64
import json
import mimetypes
import sys
from pathlib import Path

from docscan.errors import DocscanError
from docscan.ocr.engine import OcrProgress
from docscan.ocr.pipeline import OcrPipeline, preprocess
from docscan.ocr.tesseract_engine import load_tesseract_engine
from docscan.preprocessing.decode import decode_data_uri
from docscan.utils.config import AppConfig, OcrOptions, PreprocessOptions, load_config
from docscan.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def file_to_data_uri(path: Path) -> str:
    """Read an image file into an inline-encoded ``data:`` URI.

    Args:
        path: Image file path.

    Returns:
        Base64 data URI; the MIME type is guessed from the file suffix.
    """
    mime, _ = mimetypes.guess_type(path.name)
    if not mime or not mime.startswith("image/"):
        mime = "image/png"
    payload = base64.b64encode(path.read_bytes()).decode("ascii")
    return f"data:{mime};base64,{payload}"


def run_preprocess(
    input_path: Path,
    output_path: Path,
    config: AppConfig,
) -> Path:
    """Preprocess one image file and write the result.

    Returns:
        The path written.
    """
    image = file_to_data_uri(input_path)
    result = asyncio.run(
        preprocess(image, config.preprocessing, config.capabilities())
    )

    # Without a raster surface ``result`` is the unchanged input URI.
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(decode_data_uri(result))
    logger.info("Preprocessed image written to %s", output_path)
    return output_path


def _print_progress(event: OcrProgress) -> None:
    print(f"[{event.progress * 100:5.1f}%] {event.status}", file=sys.stderr)


def run_recognize(
    input_path: Path,
    config: AppConfig,
    lang: str | None = None,
    preprocess_image: bool = True,
    verbose: bool = False,
) -> dict[str, object]:
    """Recognize text in one image file.

    Returns:
        Dictionary with filename, text and confidence.
    """
    pipeline = OcrPipeline(
        lambda: load_tesseract_engine(config.ocr),
        capabilities=config.capabilities(),
    )
    options = OcrOptions(
        lang=lang or config.ocr.default_lang,
        preprocess_image=preprocess_image,
        preprocess_options=config.preprocessing,
        on_progress=_print_progress if verbose else None,
    )
    result = asyncio.run(pipeline.recognize(file_to_data_uri(input_path), options))
    return {
        "filename": input_path.name,
        "text": result.text,
        "confidence": result.confidence,
    }


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        prog="docscan",
        description="Document image preprocessing and OCR",
    )
    parser.add_argument(
        "-c", "--config", type=Path, default=None, help="YAML configuration file"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    pre_parser = subparsers.add_parser("preprocess", help="Normalize an image for OCR")
    pre_parser.add_argument("input", type=Path, help="Image file to preprocess")
    pre_parser.add_argument(
        "-o", "--output", type=Path, required=True, help="Output image file"
    )
    pre_parser.add_argument("--contrast", type=int, help="Contrast (-255..255)")
    pre_parser.add_argument(
        "--max-dimension", type=int, help="Largest side after downscaling"
    )
    pre_parser.add_argument(
        "--format", choices=["jpeg", "png"], dest="output_format", help="Output format"
    )

    rec_parser = subparsers.add_parser("recognize", help="Recognize text in an image")
    rec_parser.add_argument("input", type=Path, help="Image file to recognize")
    rec_parser.add_argument("-l", "--lang", help="Tesseract language code")
    rec_parser.add_argument(
        "--no-preprocess", action="store_true", help="Skip image normalization"
    )
    rec_parser.add_argument(
        "--json", action="store_true", help="Print text and confidence as JSON"
    )
    rec_parser.add_argument(
        "-v", "--verbose", action="store_true", help="Report progress on stderr"
    )

    args = parser.parse_args(argv)

    config = load_config(args.config)
    setup_logging(config.log_level)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if not args.input.exists():
        print(f"Error: {args.input} does not exist", file=sys.stderr)
        sys.exit(1)

    try:
        if args.command == "preprocess":
            overrides = {
                key: value
                for key, value in (
                    ("contrast", args.contrast),
                    ("max_dimension", args.max_dimension),
                    ("output_format", args.output_format),
                )
                if value is not None
            }
            config.preprocessing = PreprocessOptions(
                **{**config.preprocessing.model_dump(), **overrides}
            )
            written = run_preprocess(args.input, args.output, config)
            print(f"Output written to {written}")
        else:
            result = run_recognize(
                args.input,
                config,
                lang=args.lang,
                preprocess_image=not args.no_preprocess,
                verbose=args.verbose,
            )
            if args.json:
                print(json.dumps(result, indent=2))
            else:
                print(result["text"])
    except DocscanError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
