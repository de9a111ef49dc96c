"""
Command line client for the recipe API.

Shrinks a local photo under the upload budget, posts it with optional text
and allergies, and prints the answer with math rendered for the terminal.

    nomie-ask fridge.jpg --prompt "also have rice" --allergies "peanuts, milk"
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import httpx

from nomie.config import load_config
from nomie.pipeline.recipes.allergies import AllergyList
from nomie.pipeline.recipes.formatter import render_plain
from nomie.pipeline.recipes.image_negotiator import ImageSizeNegotiator
from nomie.pipeline.recipes.sanitizer import is_allergy_conflict
from nomie.pipeline.recipes.segmenter import MathTextSegmenter
from nomie.pipeline.recipes.types import ImageAsset, RecipePipelineError

DEFAULT_URL = "http://localhost:8000/api/llm"
CONFLICT_MESSAGE = "No safe recipe exists for your allergies."

logger = logging.getLogger("nomie.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Get allergy-safe recipes from a food photo and/or ingredient text.")
    parser.add_argument("image", nargs="?", help="Path to a food photo (optional if --prompt is given)")
    parser.add_argument("--prompt", "-p", help="Ingredients or notes to add to the photo")
    parser.add_argument("--allergies", "-a", default="", help="Comma separated allergens to avoid")
    parser.add_argument("--allow-extra", action="store_true", help="Allow recipes with common pantry ingredients")
    parser.add_argument("--url", default=DEFAULT_URL, help=f"Recipe endpoint (default: {DEFAULT_URL})")
    parser.add_argument("--config", help="Config file with image budget settings")
    parser.add_argument("--timeout", type=float, default=120.0, help="HTTP timeout in seconds")
    parser.add_argument("--raw", action="store_true", help="Print the answer text without formatting")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log image negotiation details")
    return parser


def build_payload(args: argparse.Namespace, negotiator: ImageSizeNegotiator) -> dict:
    payload = {
        "prompt": args.prompt or None,
        "allergies": AllergyList.parse(args.allergies).serialized,
        "allowExtra": args.allow_extra,
    }
    if args.image:
        encoded = negotiator.negotiate(ImageAsset(source=Path(args.image)))
        logger.info(f"Image ready: {encoded.width}x{encoded.height}, {encoded.encoded_byte_length} bytes")
        payload["image"] = encoded.data_uri
    return payload


def format_answer(text: str, raw: bool = False) -> str:
    if is_allergy_conflict(text):
        return CONFLICT_MESSAGE
    if raw:
        return text
    return render_plain(MathTextSegmenter().split(text))


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.image and not (args.prompt and args.prompt.strip()):
        parser.error("provide an image, --prompt, or both")

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    try:
        image_cfg = load_config(args.config).image if args.config else None
        negotiator = ImageSizeNegotiator.from_config(image_cfg) if image_cfg else ImageSizeNegotiator()
        payload = build_payload(args, negotiator)
    except (RecipePipelineError, FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        resp = httpx.post(args.url, json=payload, timeout=args.timeout)
    except httpx.HTTPError as e:
        print(f"Error: request failed: {e}", file=sys.stderr)
        return 1

    if resp.status_code != 200:
        try:
            message = resp.json().get("error", resp.text)
        except ValueError:
            message = resp.text
        print(f"Error: HTTP {resp.status_code}: {message}", file=sys.stderr)
        return 1

    print(format_answer(resp.json().get("text", ""), raw=args.raw))
    return 0


if __name__ == "__main__":
    sys.exit(main())
