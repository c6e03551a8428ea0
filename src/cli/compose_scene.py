#!/usr/bin/env python3
"""CLI for composing and generating a saved scene.

Usage:
    # Generate a scene exported from the web UI
    python -m cli.compose_scene --scene picnic.json --library characters.json

    # Generate a scene saved in the local library
    python -m cli.compose_scene --scene-id 5b1f... --output picnic.png

    # Show the assembled request without calling the backend
    python -m cli.compose_scene --scene picnic.json --dry-run
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Add src to path for imports
src_path = Path(__file__).parent.parent
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table

from models.character import Character
from models.composition import CompositionRequest, GeneratedSceneImage
from models.scene import Scene
from services.composition_controller import CompositionController, CompositionError
from services.image_preprocessor import ImagePreprocessor
from services.library_store import CharacterLibrary, JsonStore, SceneLibrary
from services.scene_editor import SceneEditor
from services.scene_generation_service import GeminiSceneGenerator, SceneGenerationError
from utils.config import load_config, setup_logging

console = Console()


def load_json_file(path: str) -> object:
    """Read a JSON file, exiting with a message when it cannot be parsed."""
    try:
        return json.loads(Path(path).read_text())
    except (OSError, ValueError) as e:
        console.print(f"[red]Error: cannot read {path}: {e}[/red]")
        sys.exit(1)


def load_characters(library_path: str | None, store: JsonStore) -> dict[str, Character]:
    """Characters by id, from an exported library file or the local library."""
    if library_path is None:
        return CharacterLibrary(store).as_mapping()

    data = load_json_file(library_path)
    records = data if isinstance(data, list) else [data]
    return {
        c.id: c
        for c in (Character.from_dict(r) for r in records if Character.is_valid_record(r))
    }


def load_scene(args: argparse.Namespace, store: JsonStore) -> Scene:
    if args.scene_id:
        scene = SceneLibrary(store).get(args.scene_id)
        if scene is None:
            console.print(f"[red]Error: no saved scene with id {args.scene_id}[/red]")
            sys.exit(1)
        return scene

    data = load_json_file(args.scene)
    if not Scene.is_valid_record(data):
        console.print("[red]Error: Invalid scene file.[/red]")
        sys.exit(1)
    try:
        return Scene.from_dict(data)
    except ValueError as e:
        console.print(f"[red]Error: Invalid scene file: {e}[/red]")
        sys.exit(1)


def show_request(request: CompositionRequest) -> None:
    """Print the parts and prompt that would be sent to the backend."""
    table = Table(title="Image parts (back to front)")
    table.add_column("#", style="dim")
    table.add_column("Character", style="cyan")
    table.add_column("Type")
    table.add_column("Size", justify="right")

    for i, (name, part) in enumerate(zip(request.character_names, request.image_parts), start=1):
        table.add_row(str(i), name, part.mime_type, f"{len(part.data):,} bytes")

    console.print(table)
    console.print(Panel(request.prompt_text, title="Prompt", expand=False))
    if request.response_mime_type:
        console.print(f"[dim]Response format: {request.response_mime_type}[/dim]")


async def run(
    controller: CompositionController,
    characters: list[Character],
    editor: SceneEditor,
    dry_run: bool,
) -> CompositionRequest | GeneratedSceneImage:
    snapshot = editor.snapshot()

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
    ) as progress:
        task = progress.add_task("Preparing layers...", total=len(characters) + 1)

        async def on_progress(event: dict) -> None:
            if event["type"] == "caption":
                progress.update(task, description=event["caption"])
            elif event["type"] == "layer_processed":
                progress.update(
                    task,
                    completed=event["step"],
                    description=f"Prepared {event['character']}",
                )
            elif event["type"] == "generating":
                progress.update(task, description="Generating scene...")

        if dry_run:
            request = await controller.compose_scene(
                characters, snapshot.transforms, snapshot.prompt, on_progress
            )
            progress.update(task, completed=len(characters) + 1)
            return request

        image = await controller.generate_scene(
            characters, snapshot.transforms, snapshot.prompt, on_progress
        )
        progress.update(task, completed=len(characters) + 1)
        return image


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Compose a multi-character scene and generate it with Gemini",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Generate an exported scene with an exported character library
    python -m cli.compose_scene --scene picnic.json --library characters.json

    # Override the scene prompt with a JSON directive
    python -m cli.compose_scene --scene-id 5b1f... --prompt '{"prompt": "At dusk", "transparentBackground": true}'

    # Preview the request
    python -m cli.compose_scene --scene picnic.json --dry-run
        """,
    )

    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--scene",
        type=str,
        help="Exported scene JSON file",
    )
    source.add_argument(
        "--scene-id",
        type=str,
        help="Id of a scene saved in the local library",
    )
    parser.add_argument(
        "--library",
        type=str,
        help="Exported character library JSON (default: the local library)",
    )
    parser.add_argument(
        "--prompt",
        type=str,
        help="Override the scene prompt (plain text or a JSON directive)",
    )
    parser.add_argument(
        "--output", "-o",
        type=str,
        help="Output image path (default: <scene name>.<ext> in the current directory)",
    )
    parser.add_argument(
        "--max-edge",
        type=int,
        help="Bound on each layer's longest side (default: MAX_EDGE or 512)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the assembled parts and prompt without calling the backend",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()

    # Setup logging
    setup_logging("DEBUG" if args.verbose else "WARNING")

    # Load config
    config = load_config()
    store = JsonStore(config.get("storage_dir"))
    max_edge = args.max_edge or config.get("max_edge", 512)

    if not args.dry_run and not config.get("gemini_api_key"):
        console.print("[red]Error: GEMINI_API_KEY not configured[/red]")
        console.print("[dim]Set GEMINI_API_KEY in your .env file[/dim]")
        sys.exit(1)

    scene = load_scene(args, store)
    library = load_characters(args.library, store)

    editor = SceneEditor()
    editor.load_scene(scene)
    if args.prompt is not None:
        editor.prompt = args.prompt

    characters = editor.selected_characters(library)
    missing = [cid for cid in editor.layers if cid not in library]
    if missing:
        console.print(f"[yellow]⚠ Skipping {len(missing)} character(s) missing from the library[/yellow]")

    controller = CompositionController(
        preprocessor=ImagePreprocessor(max_edge),
        generator=GeminiSceneGenerator(
            api_key=config.get("gemini_api_key", ""),
            image_model=config.get("gemini_image_model", "gemini-2.5-flash-image"),
        ),
        max_edge=max_edge,
    )

    console.print(f"\n[bold blue]Scene: {scene.name}[/bold blue] ({len(characters)} layer(s))")

    try:
        result = asyncio.run(run(controller, characters, editor, args.dry_run))
    except (CompositionError, SceneGenerationError) as e:
        console.print(f"[red]✗ {e}[/red]")
        sys.exit(1)

    if args.dry_run:
        show_request(result)
        return

    output = Path(args.output) if args.output else Path(f"{scene.name}.{result.extension}")
    output.write_bytes(result.data)
    console.print(f"[green]✓ Saved {output} ({result.mime_type}, {len(result.data):,} bytes)[/green]")
    if scene.sound_effect:
        console.print(f"[dim]Sound effect: {scene.sound_effect.name}[/dim]")


if __name__ == "__main__":
    main()
