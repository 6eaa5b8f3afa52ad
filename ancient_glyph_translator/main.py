"""
CLI entry point for ancient glyph recognition & reconstruction.

Usage:
    # Process one inscription image
    ancient-glyph-translator stele.jpg

    # Several images, two at a time, glyph store persisted between runs
    ancient-glyph-translator a.jpg b.jpg c.jpg --parallel --max-concurrent 2 \
        --glyph-db glyphs.json

    # Save the full results
    ancient-glyph-translator stele.jpg -o results.json
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from ancient_glyph_translator import __version__
from ancient_glyph_translator.batch import BatchItem, BatchProcessor
from ancient_glyph_translator.config import PipelineConfig
from ancient_glyph_translator.glyphs.store import InMemoryGlyphStore
from ancient_glyph_translator.pipeline import GlyphPipeline
from ancient_glyph_translator.utils import setup_logging


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="ancient-glyph-translator",
        description=(
            "Ancient glyph recognition — extract, match, translate and "
            "reconstruct characters from images of ancient inscriptions."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s stele.jpg
  %(prog)s a.jpg b.jpg --parallel --max-concurrent 2 -o results.json
  %(prog)s rubbing.png --script "Seal Script" --glyph-db glyphs.json

Environment variables for API keys:
  GOOGLE_GEMINI_API_KEY   - Google Gemini API key (primary OCR and text)
  ANTHROPIC_API_KEY       - Anthropic Claude API key
  OPENAI_API_KEY          - OpenAI API key
  HUGGINGFACE_API_KEY     - Hugging Face key for the verification probe
  SOCKS5_PROXY            - Route outbound calls through a SOCKS proxy
        """,
    )

    parser.add_argument(
        "images",
        nargs="+",
        type=str,
        help="Paths of inscription images",
    )

    # Output options
    parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        help="Write the full JSON report to this path",
    )

    # Batch options
    parser.add_argument(
        "--parallel",
        action="store_true",
        help="Process images concurrently in chunks",
    )
    parser.add_argument(
        "--max-concurrent",
        type=int,
        default=3,
        help="Chunk size when --parallel is set (default: 3)",
    )

    # Pipeline options
    parser.add_argument(
        "--no-reconstruction",
        action="store_true",
        help="Skip generative reconstruction of damaged glyphs",
    )
    parser.add_argument(
        "--script",
        type=str,
        default="Traditional Chinese",
        help="Script new glyphs are recorded under (default: Traditional Chinese)",
    )
    parser.add_argument(
        "--glyph-db",
        type=str,
        default=None,
        help="JSON glyph store to load before and save after processing",
    )
    parser.add_argument(
        "--dev-fallback",
        action="store_true",
        help="Substitute sample text when OCR fails (development only)",
    )
    parser.add_argument(
        "--enable-tesseract",
        action="store_true",
        help="Add local Tesseract OCR as the last OCR fallback",
    )

    # Misc
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    config = PipelineConfig(
        default_script=args.script,
        enable_reconstruction=not args.no_reconstruction,
        enable_tesseract=args.enable_tesseract,
        max_concurrent=args.max_concurrent,
        enable_ocr_fallback=True if args.dev_fallback else None,
    )

    missing = [p for p in args.images if not Path(p).exists()]
    for path in missing:
        print(f"Error: image file not found: {path}", file=sys.stderr)
    if missing:
        return 1

    if not config.get_available_providers(config.vision_providers) and not config.enable_ocr_fallback:
        print(
            "Error: No OCR backend configured.\n"
            "Set at least one of these environment variables:\n"
            "  GOOGLE_GEMINI_API_KEY\n"
            "  ANTHROPIC_API_KEY\n"
            "  OPENAI_API_KEY\n"
            "\nOr pass --enable-tesseract to use local OCR.",
            file=sys.stderr,
        )
        return 1

    store = InMemoryGlyphStore.load(args.glyph_db) if args.glyph_db else InMemoryGlyphStore()

    print(f"Ancient Glyph Translator v{__version__}")
    print(f"Images: {len(args.images)}")
    print(f"OCR backends available: {[p.value for p in config.get_available_providers(config.vision_providers)]}")
    print(f"Reconstruction: {'enabled' if config.enable_reconstruction else 'disabled'}")
    print()

    pipeline = GlyphPipeline(config, store=store)
    try:
        report = BatchProcessor(pipeline).process(
            [BatchItem(source_id=path, image=path) for path in args.images],
            parallel=args.parallel,
            enable_reconstruction=config.enable_reconstruction,
        )
    finally:
        pipeline.close()

    if args.glyph_db:
        store.save(args.glyph_db)

    if args.output:
        out = Path(args.output)
        out.parent.mkdir(parents=True, exist_ok=True)
        with open(out, "w", encoding="utf-8") as f:
            json.dump(report.to_dict(), f, ensure_ascii=False, indent=2)
        print(f"\nOutput saved to: {out}")

    # Print summary
    print("=" * 70)
    print("PROCESSING SUMMARY")
    print("=" * 70)
    for item in report.results:
        if item.result is None:
            print(f"  {item.source_id}: FAILED - {item.error}")
            continue
        result = item.result
        print(f"  {item.source_id}:")
        print(f"    Text:            {result.extracted_text}")
        print(f"    Script:          {result.script_type}")
        print(f"    Glyphs:          {item.glyphs_processed}")
        print(f"    Reconstructions: {item.reconstructions}")
        if result.translation:
            print(f"    Translation:     {result.translation.translation}")
        print(f"    Confidence:      {result.confidence:.1%}")
    print()
    print(f"  Processed:  {report.processed}")
    print(f"  Failed:     {report.failed}")
    print(f"  Total time: {report.total_processing_time:.1f}s")

    return 0 if report.failed == 0 else 2


if __name__ == "__main__":
    sys.exit(main())
