"""
Quick Start Script for Lumina
=============================

Runs a quiz analysis of a local image or a YouTube video through the proxy
and prints the result. Start the proxy first (``python main.py``).

Examples:
    python quick_start.py --youtube "https://youtu.be/dQw4w9WgXcQ" --questions 5
    python quick_start.py --image notes.png --difficulty harder --speak summary.wav
"""

import argparse
import mimetypes
import sys
from pathlib import Path
from typing import List, Optional

from client import LuminaClient, LuminaError
from config import config
from logging_utils import configure_logging
from models import AnalysisResult, DifficultyLevel, ImageSource, VideoSource
from request_builders import extract_youtube_video_id


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Lumina - quick quiz analysis")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--image", type=Path, help="Path to an image to analyze")
    source.add_argument("--youtube", help="YouTube URL or video id")
    parser.add_argument("--questions", type=int, default=5, help="Number of quiz questions (default: 5)")
    parser.add_argument(
        "--difficulty",
        choices=[level.value for level in DifficultyLevel],
        default=DifficultyLevel.SAME.value,
    )
    parser.add_argument("--proxy-url", default=config.PROXY.url, help=f"Proxy endpoint (default: {config.PROXY.url})")
    parser.add_argument("--flashcards", action="store_true", help="Also generate flashcards")
    parser.add_argument("--speak", type=Path, metavar="WAV", help="Write the spoken summary to this WAV file")
    parser.add_argument("--verbose", action="store_true", help="Per-phase debug logging")
    return parser


def load_source(args: argparse.Namespace):
    if args.image:
        mime_type = mimetypes.guess_type(args.image.name)[0] or "image/jpeg"
        return ImageSource(data=args.image.read_bytes(), mime_type=mime_type)
    video_id = extract_youtube_video_id(args.youtube) or args.youtube.strip()
    return VideoSource(video_id=video_id)


def print_result(result: AnalysisResult):
    print("\nSUMMARY")
    print("=" * 50)
    print(result.summary)
    if result.key_concepts:
        print(f"\nKey concepts: {', '.join(result.key_concepts)}")
    if result.analogy:
        print(f"Analogy: {result.analogy}")

    print(f"\nQUIZ ({len(result.quiz)} questions)")
    print("=" * 50)
    for number, item in enumerate(result.quiz, start=1):
        print(f"{number}. {item.question}")
        for letter, option in zip("ABCD", item.options):
            marker = "*" if option == item.answer else " "
            print(f"   {marker} {letter}) {option}")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging("DEBUG" if args.verbose else "WARNING")

    client = LuminaClient(proxy_url=args.proxy_url, verbose=args.verbose)
    try:
        source = load_source(args)
        result = client.analyze_source(source, args.questions, DifficultyLevel(args.difficulty))
        print_result(result)

        if args.flashcards:
            cards = client.generate_flashcards(result)
            print(f"\nFLASHCARDS ({len(cards)})")
            print("=" * 50)
            for card in cards.flashcards:
                print(f"- {card.term}: {card.definition}")

        if args.speak:
            args.speak.write_bytes(client.synthesize_speech(result.summary))
            print(f"\nSpoken summary written to {args.speak}")
    except OSError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    except LuminaError as e:
        print(f"ERROR: {type(e).__name__}: {e.message}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
