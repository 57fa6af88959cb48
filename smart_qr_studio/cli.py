"""CLI entry point for Smart QR Studio."""

import argparse
import logging
import os
import sys

from smart_qr_studio import MAX_RESOLUTION, MIN_RESOLUTION, __version__
from smart_qr_studio.symbology import ERROR_LEVELS, Symbology


CONTACT_FIELDS = ("name", "organization", "title", "phone", "email", "url", "address")


def _add_contact_arguments(parser: argparse.ArgumentParser, title: str) -> None:
    contact = parser.add_argument_group(title)
    for field in CONTACT_FIELDS:
        contact.add_argument(f"--contact-{field}", default="", help=f"Contact {field}")


def _add_design_arguments(parser: argparse.ArgumentParser) -> None:
    """Options that build a Configuration (shared by export and preview)."""
    content = parser.add_argument_group("content")
    content.add_argument("--content", "--url", dest="content", default=None,
                         help="URL or text to encode")
    content.add_argument(
        "--symbology", "-s",
        default="qr",
        choices=[s.value for s in Symbology],
        help="Symbol type. Default: qr",
    )
    content.add_argument("--error-level", default="H", choices=ERROR_LEVELS,
                         help="QR error correction level. Default: H")

    _add_contact_arguments(parser, "contact card (used when --content is omitted)")

    layout = parser.add_argument_group("layout")
    layout.add_argument("--resolution", "-r", type=int, default=1024,
                        help=f"Output canvas size in pixels ({MIN_RESOLUTION}-{MAX_RESOLUTION}, "
                             "step 128). Default: 1024")
    layout.add_argument("--scale", type=float, default=50,
                        help="Symbol group width as a percentage of the canvas (5-100). Default: 50")
    layout.add_argument("--fg", default="#000000", help="Ink colour. Default: #000000")
    layout.add_argument("--bg", default="#ffffff", help="Safe-zone patch colour. Default: #ffffff")

    text = parser.add_argument_group("text")
    text.add_argument("--title", default="", help="Heading drawn above the symbol")
    text.add_argument("--title-font", default="Inter", help="Title font family or .ttf path")
    text.add_argument("--title-weight", default="bold", help="Title weight (normal, bold, 100-900)")
    text.add_argument("--title-size", type=float, default=48.0,
                      help="Title size in px at 1024px resolution. Default: 48")
    text.add_argument("--title-spacing", type=float, default=0.0,
                      help="Title letter spacing in px at 1024px (negative allowed)")
    text.add_argument("--title-gap", type=float, default=16.0,
                      help="Gap under the title in px at 1024px. Default: 16")
    text.add_argument("--caption-font", default="Inter", help="Caption font family or .ttf path")
    text.add_argument("--caption-size", type=float, default=0.08,
                      help="Linear caption size as a fraction of the group width. Default: 0.08")
    text.add_argument("--caption-spacing", type=float, default=0.0,
                      help="Caption letter spacing in px at 1024px (negative allowed)")
    text.add_argument("--caption-gap", type=float, default=8.0,
                      help="Gap between bars and digits in px at 1024px. Default: 8")
    text.add_argument("--matrix-caption", default="Scan to open",
                      help='Caption under QR codes. Default: "Scan to open"')

    background = parser.add_argument_group("background image")
    background.add_argument("--background", default=None,
                            help="Background image: file path, http(s) URL or data: URL")
    background.add_argument("--bg-opacity", type=float, default=1.0, help="0.0-1.0. Default: 1.0")
    background.add_argument("--bg-fit", default="cover", choices=["cover", "contain"])
    background.add_argument("--bg-zoom", type=float, default=1.0, help="0.1-3.0. Default: 1.0")

    parser.add_argument("--suggest", action="store_true",
                        help="Ask the suggestion service for title, description and colour "
                             "(needs GEMINI_API_KEY; falls back to defaults without it)")


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="smart-qr-studio",
        description="Compose QR codes and barcodes with titles, captions and background images.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # QR code with a caption, 1024x1024 PNG
  python -m smart_qr_studio export --url "https://example.com" -o poster.png

  # EAN-13 barcode with grouped digits on a photo background, as PDF
  python -m smart_qr_studio export --content 4006381333931 -s ean13 \\
    --background shelf.jpg --bg-opacity 0.6 --format pdf

  # Contact card QR with a suggested title
  python -m smart_qr_studio export --contact-name "Ada Lovelace" \\
    --contact-email ada@example.com --title "Say hello"

  # SVG preview at the interactive preview size
  python -m smart_qr_studio preview --url "https://example.com" -o preview.svg

  # vCard text for a contact
  python -m smart_qr_studio vcard --contact-name "Ada Lovelace" --contact-phone 555-0100

  # Saved items
  python -m smart_qr_studio history list
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--settings", default=None, help="Path to settings.json")

    sub = parser.add_subparsers(dest="command", required=True)

    export = sub.add_parser("export", help="Render and write an image or document",
                            formatter_class=argparse.RawDescriptionHelpFormatter)
    _add_design_arguments(export)
    export.add_argument("--format", "-f", default=None, choices=["png", "jpg", "jpeg", "svg", "pdf"],
                        help="Output format. Default: png (or settings)")
    export.add_argument("--output", "-o", default=None,
                        help="Output path. Default: <export dir>/smart-qr-<symbology>-<timestamp>.<ext>")
    export.add_argument("--save", action="store_true", help="Also save the design to history")
    export.add_argument("--no-verify", action="store_true",
                        help="Skip scannability verification of the output")
    export.add_argument("--overwrite", action="store_true",
                        help="Overwrite output file without prompting")

    preview = sub.add_parser("preview", help="Write the SVG preview")
    _add_design_arguments(preview)
    preview.add_argument("--output", "-o", default="preview.svg", help="Default: preview.svg")

    suggest = sub.add_parser("suggest", help="Suggest a title, description and colour for a URL")
    suggest.add_argument("url")

    vcard = sub.add_parser("vcard", help="Print the vCard for contact fields, or parse one back")
    _add_contact_arguments(vcard, "contact card")
    vcard.add_argument("--parse", metavar="FILE", default=None,
                       help="Read a vCard file and print its fields instead")

    history = sub.add_parser("history", help="Manage saved designs")
    history_sub = history.add_subparsers(dest="history_command", required=True)
    history_sub.add_parser("list", help="List saved designs, newest first")
    delete = history_sub.add_parser("delete", help="Delete a saved design")
    delete.add_argument("id")
    show = history_sub.add_parser("show", help="Print a saved design")
    show.add_argument("id")
    export_saved = history_sub.add_parser("export", help="Export a saved design")
    export_saved.add_argument("id")
    export_saved.add_argument("--format", "-f", default=None, choices=["png", "jpg", "jpeg", "svg", "pdf"])
    export_saved.add_argument("--output", "-o", default=None)

    return parser


def _contact_from_args(args):
    from smart_qr_studio.contact import ContactCard
    return ContactCard(**{f: getattr(args, f"contact_{f}") for f in CONTACT_FIELDS})


def _build_config(args):
    from smart_qr_studio.model import (
        BackgroundImage, CaptionStyle, TitleStyle, ValidationError,
        clamp_resolution, clamp_symbol_scale, new_configuration,
    )

    content = args.content
    if content is None:
        card = _contact_from_args(args)
        if card.is_empty():
            raise ValidationError("Provide --content/--url or at least one --contact-* field.")
        content = card.to_vcard()

    background = None
    if args.background:
        background = BackgroundImage(args.background, opacity=args.bg_opacity,
                                     fit=args.bg_fit, zoom=args.bg_zoom)

    return new_configuration(
        content=content,
        symbology=Symbology.parse(args.symbology),
        error_level=args.error_level,
        resolution=clamp_resolution(args.resolution),
        symbol_scale=clamp_symbol_scale(args.scale),
        foreground=args.fg,
        background=args.bg,
        title=TitleStyle(text=args.title, font=args.title_font, weight=args.title_weight,
                         size_px=args.title_size, letter_spacing_px=args.title_spacing,
                         gap_px=args.title_gap),
        caption=CaptionStyle(font=args.caption_font, size_ratio=args.caption_size,
                             letter_spacing_px=args.caption_spacing, gap_px=args.caption_gap),
        background_image=background,
        matrix_caption=args.matrix_caption,
    )


def _print_item(item) -> None:
    config = item.config
    title = config.title.text or "(untitled)"
    print(f"  {item.id}  {config.symbology.value:<10} {title}")
    print(f"      {config.content.splitlines()[0] if config.content else ''}")


def main(argv: list[str] | None = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(name)s] %(message)s",
    )

    if args.command == "vcard":
        from smart_qr_studio.contact import parse_vcard

        if args.parse:
            try:
                with open(args.parse, encoding="utf-8") as f:
                    card = parse_vcard(f.read())
            except (OSError, ValueError) as e:
                print(f"  ERROR: {e}", file=sys.stderr)
                return 1
            for field in CONTACT_FIELDS:
                value = getattr(card, field)
                if value:
                    print(f"  {field.capitalize():<13} {value}")
            return 0
        card = _contact_from_args(args)
        if card.is_empty():
            print("  ERROR: Provide at least one --contact-* field.", file=sys.stderr)
            return 1
        print(card.to_vcard())
        return 0

    # Lazy imports for faster --help
    from functools import partial
    from pathlib import Path
    from smart_qr_studio.encoder import EncodingError
    from smart_qr_studio.export import ExportFormat, export_filename, render_surface
    from smart_qr_studio.fonts import add_font_dir
    from smart_qr_studio.history import HistoryStore
    from smart_qr_studio.image_utils import VerifyResult, try_load_background_image, verify_symbol_scannable
    from smart_qr_studio.settings import load_settings
    from smart_qr_studio.studio import Studio
    from smart_qr_studio.suggestion import get_client

    settings = load_settings(Path(args.settings) if args.settings else None)
    if settings.font_dir:
        add_font_dir(settings.font_dir)

    suggestions = get_client(
        settings.suggestion_api_key,
        model=settings.suggestion_model,
        timeout=settings.suggestion_timeout,
        max_retries=settings.suggestion_max_retries,
        show_progress=True,
    ) if settings.suggestion_api_key else get_client(None)

    if args.command == "suggest":
        print(f"Smart QR Studio v{__version__} ({suggestions.name()})")
        suggestion = suggestions.suggest(args.url)
        print(f"  Title:       {suggestion.title}")
        print(f"  Description: {suggestion.description}")
        print(f"  Colour:      {suggestion.suggested_color}")
        return 0

    history = HistoryStore(settings.history_path)

    if args.command == "history":
        if args.history_command == "list":
            items = history.items()
            print(f"{len(items)} saved design(s) in {history.path}")
            for item in items:
                _print_item(item)
            return 0
        if args.history_command == "delete":
            if history.delete(args.id):
                print(f"  ✓ Deleted {args.id}")
                return 0
            print(f"  ERROR: No saved design with id {args.id}", file=sys.stderr)
            return 1
        item = history.get(args.id)
        if item is None:
            print(f"  ERROR: No saved design with id {args.id}", file=sys.stderr)
            return 1
        if args.history_command == "show":
            _print_item(item)
            print(f"      resolution={item.config.resolution} scale={item.config.symbol_scale}")
            return 0

    print(f"Smart QR Studio v{__version__}")
    print("=" * 50)

    try:
        if args.command == "history":
            config = item.config
        else:
            config = _build_config(args)
    except ValueError as e:
        print(f"\n  ERROR: {e}", file=sys.stderr)
        return 1

    loader = partial(try_load_background_image, timeout=settings.background_timeout)
    with Studio(history=history, suggestion_client=suggestions, background_loader=loader,
                config=config) as studio:
        try:
            if getattr(args, "suggest", False):
                print(f"\n[*] Asking {suggestions.name()} for suggestions...")
                suggestion = studio.apply_suggestion()
                print(f"  ✓ {suggestion.title} / {suggestion.suggested_color}")

            print(f"\n  Content:  {(studio.config.content.splitlines() or [''])[0]}")
            print(f"  Symbol:   {studio.config.symbology.capability.label}")

            if args.command == "preview":
                studio.wait_for_background(settings.background_timeout)
                svg = studio.preview_svg()
                os.makedirs(os.path.dirname(args.output) or ".", exist_ok=True)
                with open(args.output, "w", encoding="utf-8") as f:
                    f.write(svg)
                print(f"\n✅ Preview written to: {args.output}")
                return 0

            fmt = ExportFormat.parse(args.format or settings.export_format)
            output = args.output or os.path.join(settings.export_dir, export_filename(studio.config.symbology, fmt))
            if os.path.exists(output) and not getattr(args, "overwrite", False):
                response = input(f"  Output file '{output}' already exists. Overwrite? [y/N] ")
                if response.lower() not in ("y", "yes"):
                    print("  Aborted.")
                    return 0

            print(f"\n[1/2] Rendering {studio.config.resolution}x{studio.config.resolution} {fmt.name}...")
            path = studio.export(fmt, directory=os.path.dirname(output) or ".",
                                 filename=os.path.basename(output),
                                 timeout=settings.background_timeout)
            print(f"  ✓ Saved: {path}")

            if getattr(args, "save", False):
                saved = studio.save()
                print(f"  ✓ Saved to history as {saved.id}")

            if not getattr(args, "no_verify", False):
                print("\n[2/2] Verifying scannability...")
                result, decoded = verify_symbol_scannable(
                    render_surface(studio.config, studio.background_image))
                if result == VerifyResult.SCANNABLE:
                    print(f"  ✓ Symbol is SCANNABLE! Decoded: {decoded}")
                elif result == VerifyResult.SKIPPED:
                    print("  ⊘ Verification skipped (pyzbar not installed)")
                    print("    Install with: pip install pyzbar")
                else:
                    print("  ⚠️  WARNING: symbol may not be scannable.")
                    print("     Try a larger --scale or a lower --bg-opacity.")
            else:
                print("\n[2/2] Verification skipped")

            print(f"\n✅ Done! Your code is at: {path}")
            return 0

        except (ValueError, OSError, TimeoutError, EncodingError) as e:
            print(f"\n  ERROR: {e}", file=sys.stderr)
            return 1


if __name__ == "__main__":
    sys.exit(main())
