#!/usr/bin/env -S uv run --quiet --script

# /// script
# requires-python = ">=3.10"
# dependencies = [
#   "google-genai",
#   "pillow",
# ]
# ///

"""
Nanobanana: Gemini image generation from the command line.

Usage:
    uv run nanobanana.py generate "sunset over mountains" --count=3
    uv run nanobanana.py edit photo.png "add sunglasses" --preview
    uv run nanobanana.py story "seed growing into tree" --steps=5
"""

import argparse
import base64
import os
import re
import subprocess
import sys
import time
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path

from PIL import Image, UnidentifiedImageError

# ═══════════════════════════════════════════════════════════════════════════
# CONSTANTS
# ═══════════════════════════════════════════════════════════════════════════

OUTPUT_DIR = "nanobanana-output"
DEFAULT_MODEL = "gemini-3-pro-image-preview"

# Checked in order, first non-empty wins
API_KEY_ENV_VARS = ("NANOBANANA_GEMINI_API_KEY", "GEMINI_API_KEY", "GOOGLE_API_KEY")
MODEL_ENV_VAR = "NANOBANANA_MODEL"

MAX_COUNT = 8
MIN_STEPS = 2
MAX_STEPS = 8
SLUG_LENGTH = 32
BASE64_MIN_LENGTH = 1000

DEFAULT_RESTORE_PROMPT = "restore and enhance this image"

VARIATION_SUFFIXES = {
    "lighting": ("dramatic lighting", "soft lighting"),
    "mood": ("cheerful mood", "dramatic mood"),
}

COMMANDS = ("generate", "edit", "restore", "icon", "pattern", "diagram", "story", "tips")

_BASE64_RE = re.compile(r"[A-Za-z0-9+/]*={0,2}")


# ═══════════════════════════════════════════════════════════════════════════
# ERRORS & CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════


class NanobananaError(Exception):
    """Base class for errors reported to the user."""


class ConfigError(NanobananaError):
    """Missing or invalid configuration (e.g. no API key)."""


class InputError(NanobananaError):
    """Bad user input: missing prompt, unreadable reference image."""


class NoImageDataError(NanobananaError):
    """The API answered but no part of the response carried an image."""


@dataclass(frozen=True)
class Config:
    api_key: str
    model: str = DEFAULT_MODEL
    output_dir: Path = Path(OUTPUT_DIR)


def load_config(environ=None, output_dir=None):
    """Resolve the API key, model and output directory once at startup.

    Raises ConfigError when no credential is set.
    """
    env = os.environ if environ is None else environ

    api_key = None
    for name in API_KEY_ENV_VARS:
        value = (env.get(name) or "").strip()
        if value:
            api_key = value
            break
    if not api_key:
        raise ConfigError("No API key found. Set GEMINI_API_KEY environment variable.")

    model = (env.get(MODEL_ENV_VAR) or "").strip() or DEFAULT_MODEL
    out = Path(output_dir) if output_dir else Path.cwd() / OUTPUT_DIR
    return Config(api_key=api_key, model=model, output_dir=out)


# ═══════════════════════════════════════════════════════════════════════════
# PROMPT EXPANSION
# ═══════════════════════════════════════════════════════════════════════════


def split_list(value):
    """Split a comma-separated flag value, dropping blank entries."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def expand_prompts(base, styles=None, variations=None, count=None):
    """Expand a base prompt into the ordered list of prompts to submit.

    Styles are alternatives (one prompt per style, the plain base is dropped).
    Variations then multiply every prompt; "lighting" and "mood" each yield two.
    ``count`` replicates a single unmodified base prompt, or truncates a longer list.
    """
    prompts = [base]

    if styles:
        prompts = [f"{base}, {s} style" for s in styles]

    if variations:
        expanded = []
        for p in prompts:
            for tag in variations:
                for suffix in VARIATION_SUFFIXES.get(tag, (tag,)):
                    expanded.append(f"{p}, {suffix}")
        prompts = expanded

    if count and count > 1 and len(prompts) == 1:
        prompts = [base] * count

    if count and len(prompts) > count:
        prompts = prompts[:count]

    return prompts


def icon_prompt(prompt, type="app-icon", style="modern", background="transparent",
                corners="rounded"):
    full = f"{prompt}, {style} style {type}"
    if type == "app-icon":
        full += f", {corners} corners"
    if background != "transparent":
        full += f", {background} background"
    return full + ", clean design, high quality"


def pattern_prompt(prompt, type="seamless", style="abstract", density="medium",
                   colors="colorful", size="256x256"):
    full = f"{prompt}, {style} style {type} pattern, {density} density, {colors} colors"
    if type == "seamless":
        full += ", tileable"
    return full + f", {size}, high quality"


def diagram_prompt(prompt, type="flowchart", style="professional", layout="hierarchical",
                   complexity="detailed", colors="accent"):
    return (
        f"{prompt}, {type} diagram, {style} style, {layout} layout, "
        f"{complexity} detail, {colors} colors, clear visual hierarchy"
    )


def story_prompts(prompt, steps=4, type="story", style=None, transition=None):
    """Build one prompt per step of a sequence, in step order."""
    prompts = []
    for i in range(steps):
        p = f"{prompt}, step {i + 1} of {steps}"
        if type == "process":
            p += ", instructional illustration"
        elif type == "tutorial":
            p += ", educational diagram"
        elif type == "timeline":
            p += ", chronological"
        else:
            p += f", {style or 'consistent'} style"
        if i > 0:
            p += f", {transition or 'smooth'} transition"
        prompts.append(p)
    return prompts


# ═══════════════════════════════════════════════════════════════════════════
# OUTPUT FILES
# ═══════════════════════════════════════════════════════════════════════════


def ensure_output_dir(directory):
    """Create the output directory (and parents) if needed; return it."""
    path = Path(directory)
    path.mkdir(parents=True, exist_ok=True)
    return path


def slugify(text):
    """Filesystem-safe filename stem derived from a prompt."""
    slug = re.sub(r"[^a-z0-9\s]", "", text.lower())
    slug = re.sub(r"\s+", "_", slug)
    return slug[:SLUG_LENGTH] or "image"


def allocate_filename(prompt, ordinal=0, directory=OUTPUT_DIR):
    """Return a ``.png`` filename that does not exist yet in ``directory``.

    The numeric suffix counter starts at ``ordinal`` (or 1). The existence
    check is not atomic: two processes writing the same slug into the same
    directory can both pick the same name.
    """
    directory = Path(directory)
    slug = slugify(prompt)
    name = f"{slug}.png"
    counter = ordinal if ordinal > 0 else 1
    while (directory / name).exists():
        name = f"{slug}_{counter}.png"
        counter += 1
    return name


def save_image(data, filename, directory):
    """Write image bytes into ``directory`` and return the full path."""
    path = ensure_output_dir(directory) / filename
    path.write_bytes(data)
    return path


def find_file(name, search_dirs=None):
    """Locate an input image by absolute path or in the usual places.

    Searches the current directory, the output directory, ~/Downloads and
    ~/Desktop. Returns None when nothing matches.
    """
    candidate = Path(name)
    if candidate.is_absolute():
        return candidate if candidate.is_file() else None

    if search_dirs is None:
        home = Path.home()
        search_dirs = [Path.cwd(), Path.cwd() / OUTPUT_DIR, home / "Downloads", home / "Desktop"]

    for d in search_dirs:
        full = Path(d) / name
        if full.is_file():
            return full
    return None


def open_file(path):
    """Open a file in the platform's default viewer. Failures are ignored."""
    if sys.platform == "darwin":
        cmd = ["open", str(path)]
    elif sys.platform == "win32":
        cmd = ["cmd", "/c", "start", "", str(path)]
    else:
        cmd = ["xdg-open", str(path)]
    try:
        subprocess.run(cmd, check=True, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
    except (OSError, subprocess.SubprocessError):
        pass


# ═══════════════════════════════════════════════════════════════════════════
# API WRAPPERS
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ReferenceImage:
    data: bytes
    mime_type: str = "image/png"


def is_base64(text):
    """True for long text that is shaped like a base64 image payload."""
    return bool(text) and len(text) > BASE64_MIN_LENGTH and bool(_BASE64_RE.fullmatch(text))


def extract_image_data(response):
    """Pull the image bytes out of a generate_content response.

    Only the first candidate is inspected. A part with inline binary data wins;
    otherwise a text part that looks like base64 is decoded. Returns None when
    no part qualifies.
    """
    candidates = getattr(response, "candidates", None)
    if not candidates:
        return None
    content = getattr(candidates[0], "content", None)
    parts = getattr(content, "parts", None) or []

    for part in parts:
        inline = getattr(part, "inline_data", None)
        data = getattr(inline, "data", None) if inline else None
        if data:
            return base64.b64decode(data) if isinstance(data, str) else data
        text = getattr(part, "text", None)
        if text and is_base64(text):
            return base64.b64decode(text)
    return None


def load_reference_image(path):
    """Read an image file and work out its MIME type with Pillow."""
    data = Path(path).read_bytes()
    try:
        with Image.open(BytesIO(data)) as img:
            fmt = img.format
    except UnidentifiedImageError as e:
        raise InputError(f"Not a recognizable image: {path}") from e
    return ReferenceImage(data=data, mime_type=Image.MIME.get(fmt, "image/png"))


class ImageClient:
    """Gemini image generation, one request per prompt, no retries."""

    def __init__(self, config, client=None):
        self.config = config
        if client is None:
            from google import genai

            client = genai.Client(api_key=config.api_key)
        self._client = client

    @property
    def model(self):
        return self.config.model

    def generate_image(self, prompt, reference=None):
        """Submit a prompt (and optional reference image); return bytes or None."""
        from google.genai import types

        parts = [types.Part.from_text(text=prompt)]
        if reference is not None:
            parts.append(types.Part.from_bytes(data=reference.data, mime_type=reference.mime_type))

        response = self._client.models.generate_content(
            model=self.model,
            contents=[types.Content(role="user", parts=parts)],
        )
        return extract_image_data(response)


# ═══════════════════════════════════════════════════════════════════════════
# COMMANDS
# ═══════════════════════════════════════════════════════════════════════════


@dataclass
class ItemResult:
    """Outcome of one prompt in a batch: a saved path or a failure reason."""

    prompt: str
    path: Path = None
    error: str = None

    @property
    def ok(self):
        return self.path is not None


def saved_paths(results):
    return [r.path for r in results if r.ok]


def _run_item(client, prompt, name_seed, ordinal, output_dir, reference=None):
    try:
        data = client.generate_image(prompt, reference=reference)
        if not data:
            raise NoImageDataError("Response contained no image data")
        filename = allocate_filename(name_seed, ordinal, output_dir)
        return ItemResult(prompt=prompt, path=save_image(data, filename, output_dir))
    except Exception as e:
        return ItemResult(prompt=prompt, error=str(e) or type(e).__name__)


def _preview(results, preview):
    if preview:
        for path in saved_paths(results):
            open_file(path)


def _summary(results, started):
    ok = len(saved_paths(results))
    print(f"Saved {ok}/{len(results)} image(s) ({time.perf_counter() - started:.1f}s)")


def generate(client, prompt, count=None, styles=None, variations=None, preview=False,
             output_dir=OUTPUT_DIR):
    """Expand the prompt and generate one image per expanded prompt.

    Prompts are submitted one after another. A failing item is reported and
    skipped; the rest of the batch still runs.

    Returns:
        List of ItemResult, one per expanded prompt, in submission order.
    """
    started = time.perf_counter()
    output_dir = ensure_output_dir(output_dir)
    prompts = expand_prompts(prompt, styles=styles, variations=variations, count=count)

    print(f"Generating {len(prompts)} image(s)...")

    results = []
    for i, p in enumerate(prompts):
        result = _run_item(client, p, p, i, output_dir)
        if result.ok:
            print(f"  {result.path}")
        else:
            print(f"  Error: {result.error}", file=sys.stderr)
        results.append(result)

    _summary(results, started)
    _preview(results, preview)
    return results


def edit(client, file, prompt, mode="edit", preview=False, output_dir=OUTPUT_DIR):
    """Edit (or restore) an existing image with a text instruction.

    Raises FileNotFoundError when ``file`` cannot be located, and InputError
    when it is not an image.
    """
    path = find_file(file)
    if path is None:
        raise FileNotFoundError(f"File not found: {file}")

    started = time.perf_counter()
    print(f"{'Restoring' if mode == 'restore' else 'Editing'} {path}...")

    reference = load_reference_image(path)
    output_dir = ensure_output_dir(output_dir)

    result = _run_item(client, prompt, f"{mode}_{prompt}", 0, output_dir, reference=reference)
    if result.ok:
        print(f"  {result.path}")
    else:
        print(f"Error: {result.error}", file=sys.stderr)

    results = [result]
    _summary(results, started)
    _preview(results, preview)
    return results


def story(client, prompt, steps=4, type="story", style=None, transition=None, preview=False,
          output_dir=OUTPUT_DIR):
    """Generate a sequence of images, one per step."""
    started = time.perf_counter()
    output_dir = ensure_output_dir(output_dir)
    prompts = story_prompts(prompt, steps=steps, type=type, style=style, transition=transition)

    print(f"Generating {steps}-step {type}...")

    results = []
    for i, p in enumerate(prompts):
        result = _run_item(client, p, f"{type}_step{i + 1}_{prompt}", 0, output_dir)
        if result.ok:
            print(f"  Step {i + 1}: {result.path}")
        else:
            print(f"  Error step {i + 1}: {result.error}", file=sys.stderr)
        results.append(result)

    _summary(results, started)
    _preview(results, preview)
    return results


# ═══════════════════════════════════════════════════════════════════════════
# HELP & TIPS
# ═══════════════════════════════════════════════════════════════════════════

HELP_TEXT = f"""\
nanobanana - Gemini image generation CLI

Commands:
  generate <prompt>       Generate images from text
  edit <file> <prompt>    Modify an existing image
  restore <file> [prompt] Restore old/damaged photos
  icon <prompt>           Generate app icons
  pattern <prompt>        Create seamless patterns
  diagram <prompt>        Generate technical diagrams
  story <prompt>          Create image sequences
  tips [command]          Show prompting tips

Options:
  --count=N       Number of variations (1-{MAX_COUNT})
  --styles=a,b    Comma-separated styles
  --variations=a,b
                  Comma-separated variations (lighting, mood, ...)
  --preview, -p   Open images after generation
  --type=TYPE     Type for icons/patterns/diagrams/stories
  --steps=N       Steps for stories ({MIN_STEPS}-{MAX_STEPS})
  --output-dir=D  Where to save images

Environment:
  GEMINI_API_KEY    Your Gemini API key (required; GOOGLE_API_KEY and
                    NANOBANANA_GEMINI_API_KEY also work)
  {MODEL_ENV_VAR}  Model override (default: {DEFAULT_MODEL})

Output saved to: ./{OUTPUT_DIR}/
"""

TIPS = {
    "generate": """
generate: Create images from text

  nanobanana generate "sunset over mountains"
  nanobanana generate "logo" --count=4 --styles=modern,minimal
  nanobanana generate "cat" --variations=lighting,mood --preview

Options: --count, --styles, --variations, --preview
Styles: photorealistic, watercolor, oil-painting, sketch, pixel-art, anime, vintage, modern, abstract, minimalist
Variations: lighting, angle, color-palette, composition, mood, season, time-of-day
""",
    "edit": """
edit: Modify an existing image

  nanobanana edit photo.png "add sunglasses"
  nanobanana edit landscape.jpg "change sky to sunset" --preview

Be specific about what to change and where.
""",
    "restore": """
restore: Enhance old or damaged photos

  nanobanana restore old_photo.jpg
  nanobanana restore damaged.png "remove scratches, enhance clarity"
""",
    "icon": """
icon: Generate app icons

  nanobanana icon "settings gear" --sizes=64,128,256
  nanobanana icon "logo" --type=favicon --style=minimal

Options: --type (app-icon,favicon,ui-element), --style (flat,minimal,modern), --sizes, --background, --corners
""",
    "pattern": """
pattern: Create seamless patterns

  nanobanana pattern "hexagons" --style=geometric --colors=duotone
  nanobanana pattern "wood grain" --type=texture

Options: --type, --style, --density, --colors, --size
""",
    "diagram": """
diagram: Generate technical diagrams

  nanobanana diagram "login flow" --type=flowchart
  nanobanana diagram "microservices" --type=architecture

Options: --type (flowchart,architecture,network,database,wireframe,mindmap,sequence), --style, --layout, --complexity, --colors
""",
    "story": """
story: Create sequential images

  nanobanana story "seed growing into tree" --steps=5
  nanobanana story "making coffee" --type=tutorial --steps=6

Options: --steps (2-8), --type (story,process,tutorial,timeline), --style, --transition
""",
}

GENERAL_TIPS = """
Tips - run "nanobanana tips <command>" for details

Commands: generate, edit, restore, icon, pattern, diagram, story

General tips:
  - Be specific: "golden retriever puppy" beats "dog"
  - Include style: "watercolor", "photorealistic"
  - Add context: "for a children's book"
"""


def show_tips(command=None):
    if not command:
        return GENERAL_TIPS
    if command in TIPS:
        return TIPS[command]
    return f"Unknown: {command}\nAvailable: {', '.join(TIPS)}"


# ═══════════════════════════════════════════════════════════════════════════
# CLI
# ═══════════════════════════════════════════════════════════════════════════


def _bounded_int(lo, hi):
    def parse(value):
        try:
            n = int(value)
        except ValueError:
            raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}")
        if not lo <= n <= hi:
            raise argparse.ArgumentTypeError(f"must be between {lo} and {hi}")
        return n
    return parse


def build_parser():
    parser = argparse.ArgumentParser(
        prog="nanobanana",
        description="Nanobanana - Gemini image generation CLI",
    )
    subparsers = parser.add_subparsers(dest="command", help="Command")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--preview", "-p", action="store_true",
                        help="Open images after generation")
    common.add_argument("--output-dir", default=None,
                        help=f"Output directory (default: ./{OUTPUT_DIR})")

    # --- generate ---
    gen_parser = subparsers.add_parser("generate", parents=[common],
                                       help="Generate images from text")
    gen_parser.add_argument("prompt", nargs="*")
    gen_parser.add_argument("--count", type=_bounded_int(1, MAX_COUNT), default=None,
                            help=f"Number of images (1-{MAX_COUNT})")
    gen_parser.add_argument("--styles", default=None, help="Comma-separated styles")
    gen_parser.add_argument("--variations", default=None, help="Comma-separated variations")

    # --- edit / restore ---
    edit_parser = subparsers.add_parser("edit", parents=[common], help="Modify an existing image")
    edit_parser.add_argument("file", nargs="?")
    edit_parser.add_argument("prompt", nargs="*")

    restore_parser = subparsers.add_parser("restore", parents=[common],
                                           help="Restore old/damaged photos")
    restore_parser.add_argument("file", nargs="?")
    restore_parser.add_argument("prompt", nargs="*")

    # --- icon ---
    icon_parser = subparsers.add_parser("icon", parents=[common], help="Generate app icons")
    icon_parser.add_argument("prompt", nargs="*")
    icon_parser.add_argument("--type", default="app-icon")
    icon_parser.add_argument("--style", default="modern")
    icon_parser.add_argument("--sizes", default="256", help="Comma-separated sizes")
    icon_parser.add_argument("--background", default="transparent")
    icon_parser.add_argument("--corners", default="rounded")

    # --- pattern ---
    pattern_parser = subparsers.add_parser("pattern", parents=[common],
                                           help="Create seamless patterns")
    pattern_parser.add_argument("prompt", nargs="*")
    pattern_parser.add_argument("--type", default="seamless")
    pattern_parser.add_argument("--style", default="abstract")
    pattern_parser.add_argument("--density", default="medium")
    pattern_parser.add_argument("--colors", default="colorful")
    pattern_parser.add_argument("--size", default="256x256")

    # --- diagram ---
    diagram_parser = subparsers.add_parser("diagram", parents=[common],
                                           help="Generate technical diagrams")
    diagram_parser.add_argument("prompt", nargs="*")
    diagram_parser.add_argument("--type", default="flowchart")
    diagram_parser.add_argument("--style", default="professional")
    diagram_parser.add_argument("--layout", default="hierarchical")
    diagram_parser.add_argument("--complexity", default="detailed")
    diagram_parser.add_argument("--colors", default="accent")

    # --- story ---
    story_parser = subparsers.add_parser("story", parents=[common], help="Create image sequences")
    story_parser.add_argument("prompt", nargs="*")
    story_parser.add_argument("--steps", type=_bounded_int(MIN_STEPS, MAX_STEPS), default=4,
                              help=f"Number of steps ({MIN_STEPS}-{MAX_STEPS})")
    story_parser.add_argument("--type", default="story")
    story_parser.add_argument("--style", default=None)
    story_parser.add_argument("--transition", default=None)

    # --- tips ---
    tips_parser = subparsers.add_parser("tips", help="Show prompting tips")
    tips_parser.add_argument("topic", nargs="?")

    return parser, subparsers.choices


def _fail(message):
    print(message, file=sys.stderr)
    sys.exit(1)


def _make_client(args):
    config = load_config(output_dir=args.output_dir)
    return ImageClient(config), config.output_dir


def main(argv=None):
    argv = list(sys.argv[1:] if argv is None else argv)

    if not argv or argv[0] in ("-h", "--help"):
        print(HELP_TEXT)
        return

    # Anything that isn't a command is a free-form prompt
    if argv[0] not in COMMANDS:
        argv = ["generate"] + argv

    # Flags may sit anywhere between the prompt words
    _, commands = build_parser()
    command = argv[0]
    args = commands[command].parse_intermixed_args(argv[1:])
    args.command = command

    if args.command == "tips":
        print(show_tips(args.topic))
        return

    prompt = " ".join(getattr(args, "prompt", None) or [])

    if args.command in ("edit", "restore"):
        if args.command == "restore":
            prompt = prompt or DEFAULT_RESTORE_PROMPT
        if not args.file or not prompt:
            usage = "<file> <prompt>" if args.command == "edit" else "<file> [prompt]"
            _fail(f"Usage: nanobanana {args.command} {usage}")
    elif not prompt:
        _fail("Error: provide a prompt")

    if args.command in ("edit", "restore") and find_file(args.file) is None:
        _fail(f"Error: File not found: {args.file}")

    try:
        client, output_dir = _make_client(args)

        if args.command == "generate":
            generate(client, prompt, count=args.count, styles=split_list(args.styles),
                     variations=split_list(args.variations), preview=args.preview,
                     output_dir=output_dir)

        elif args.command in ("edit", "restore"):
            edit(client, args.file, prompt, mode=args.command, preview=args.preview,
                 output_dir=output_dir)

        elif args.command == "icon":
            full = icon_prompt(prompt, type=args.type, style=args.style,
                               background=args.background, corners=args.corners)
            count = len(split_list(args.sizes)) or 1
            generate(client, full, count=count, preview=args.preview, output_dir=output_dir)

        elif args.command == "pattern":
            full = pattern_prompt(prompt, type=args.type, style=args.style, density=args.density,
                                  colors=args.colors, size=args.size)
            generate(client, full, preview=args.preview, output_dir=output_dir)

        elif args.command == "diagram":
            full = diagram_prompt(prompt, type=args.type, style=args.style, layout=args.layout,
                                  complexity=args.complexity, colors=args.colors)
            generate(client, full, preview=args.preview, output_dir=output_dir)

        elif args.command == "story":
            story(client, prompt, steps=args.steps, type=args.type, style=args.style,
                  transition=args.transition, preview=args.preview, output_dir=output_dir)

    except (NanobananaError, OSError) as e:
        _fail(f"Error: {e}")


if __name__ == "__main__":
    main()
