"""
CLI Command Handlers

Each handler takes the parsed namespace and returns an exit code.
"""

import argparse
import json
from typing import Optional, Sequence

from rich.table import Table

from ..captions import CaptionSynthesizer
from ..config import CONFIG_CATEGORIES, config
from ..diagnostics import console
from ..exceptions import ConfigurationError
from ..identity import KnownPersonsDirectory
from ..models import Annotation, Size, Stats
from ..pipeline import AnnotationPipeline
from ..replay import load_frames
from ..translation import TranslationResolver

SENSITIVE = ("PASS", "KEY", "TOKEN", "SECRET")


def _parse_viewport(value: str) -> Size:
    try:
        return Size.parse(value)
    except ValueError:
        raise ConfigurationError(f"Viewport must look like 1280x720, got {value!r}")


def handle_translate(args: argparse.Namespace) -> int:
    """Handle the 'translate' command."""
    resolver = TranslationResolver.from_config(config)
    source, target = resolver.language_pair
    if args.source or args.target:
        resolver.set_languages(args.source or source, args.target or target)

    try:
        results = [(text, resolver.translate(text)) for text in args.text]
    finally:
        resolver.shutdown()

    if args.json:
        source, target = resolver.language_pair
        payload = [
            {"text": text, "translation": translated, "source": source, "target": target}
            for text, translated in results
        ]
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    else:
        for _text, translated in results:
            print(translated)
    return 0


def _load_directory(args: argparse.Namespace) -> Optional[KnownPersonsDirectory]:
    if args.persons:
        return KnownPersonsDirectory.from_yaml(args.persons)
    if args.demo_persons:
        return KnownPersonsDirectory.demo()
    return None


def handle_replay(args: argparse.Namespace) -> int:
    """Handle the 'replay' command."""
    frames, recorded_viewport = load_frames(args.file)
    viewport = _parse_viewport(args.viewport) if args.viewport else recorded_viewport

    pipeline = AnnotationPipeline.from_config(config, directory=_load_directory(args))
    if args.seed is not None:
        pipeline.synthesizer = CaptionSynthesizer(seed=args.seed)
    if viewport is not None:
        pipeline.aggregator.set_viewport(viewport)
    if args.source or args.target:
        source, target = pipeline.resolver.language_pair
        pipeline.set_languages(args.source or source, args.target or target)

    with pipeline:
        for frame in frames:
            pipeline.process_frame(frame)
            if not pipeline.flush(timeout=args.timeout):
                console.print(f"[yellow]Frame {frame.frame_num}: translations still pending[/yellow]")
        annotations = pipeline.snapshot()
        stats = pipeline.stats()

    if args.json:
        payload = {
            "frames": len(frames),
            "annotations": [a.to_dict() for a in annotations],
            "stats": stats.to_dict(),
        }
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    else:
        _print_annotations(annotations, stats, len(frames))
    return 0


def _print_annotations(annotations: Sequence[Annotation], stats: Stats, frame_count: int):
    table = Table(title=f"Annotations after {frame_count} frames")
    table.add_column("Key", style="cyan")
    table.add_column("Kind")
    table.add_column("State")
    table.add_column("Original", style="white")
    table.add_column("Translated", style="green")
    table.add_column("Conf", style="yellow")
    table.add_column("Box", style="blue")

    for a in annotations:
        if a.display_rect is not None:
            r = a.display_rect
            box = f"{r.x:.0f},{r.y:.0f} {r.width:.0f}x{r.height:.0f}px"
        else:
            box = f"{a.box.x:.2f},{a.box.y:.2f} {a.box.width:.2f}x{a.box.height:.2f}"
        original = f"{a.original_text} *" if a.is_personalized else a.original_text
        table.add_row(
            a.key,
            a.kind.value,
            a.state.value,
            original,
            a.translated_text,
            f"{a.confidence:.2f}",
            box,
        )

    console.print(table)
    console.print(
        f"text: {stats.active_text_count} active | faces: {stats.active_face_count} active | "
        f"captions: {stats.active_caption_count} | cache: {stats.cache_size}"
    )


def handle_config(args: argparse.Namespace) -> int:
    """Handle the 'config' command."""
    if args.show:
        print("📋 Current Configuration:")
        for category, items in CONFIG_CATEGORIES.items():
            print(f"\n{category}")
            for key, _label, _desc in items:
                value = config.get(key)
                # Hide sensitive values
                if any(s in key.upper() for s in SENSITIVE):
                    value = "*" * len(str(value)) if value else "(not set)"
                print(f"  {key}={value}")
        return 0

    if args.get:
        print(f"{args.get}={config.get(args.get)}")
        return 0

    if args.set:
        key, value = args.set
        config.set(key, value)
        config.save(keys_only=[key])
        print(f"✅ Set {key}={value}")
        return 0

    # Default: show help
    print("Use --show to view config, --set KEY VALUE to modify")
    return 0
