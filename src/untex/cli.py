"""Command-line interface for untex."""

from __future__ import annotations

import argparse
import json
import logging
import sys
import tomllib
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, TextIO, TypeVar

from rich.color import ColorParseError, ColorSystem
from rich.console import Console
from rich.logging import RichHandler

from untex.errors import CheckError, ConfigError, InputError, UntexError
from untex.highlight import HighlightedPart, make_highlighter
from untex.lexer import Lexer
from untex.render import HighlightStyle
from untex.tokens import TokenKind, byte_offsets

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "untex.toml"

COLOR_CHOICES = ("auto", "always", "never")
OUTPUT_FORMATS = ("auto", "colorized", "annotated", "json")

_COLOR_SYSTEMS = {
    "standard": ColorSystem.STANDARD,
    "256": ColorSystem.EIGHT_BIT,
    "truecolor": ColorSystem.TRUECOLOR,
    "windows": ColorSystem.WINDOWS,
}

_STYLE_FLAGS = ("bold", "dimmed", "italic", "underline", "strikethrough", "intense")

E = TypeVar("E", bound=Enum)


@dataclass(frozen=True, slots=True)
class CliOptions:
    """Parsed CLI options, merged with the configuration file."""

    command: str
    filenames: list[Path]
    color: str
    verbose: bool
    part: HighlightedPart
    token: TokenKind | None
    style: HighlightStyle
    output_format: str
    indent_width: int
    strip_comments: bool
    in_place: bool


@dataclass(frozen=True, slots=True)
class Source:
    """A source text and the name it is reported under."""

    name: str
    text: str
    path: Path | None = None


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser (separate function for testability)."""
    p = argparse.ArgumentParser(
        prog="untex",
        description="UnTeX: TeX files manipulations made easy.",
    )
    p.add_argument(
        "--config",
        metavar="FILE",
        help=f"Config file (default: auto-discover {CONFIG_FILENAME})",
    )
    p.add_argument(
        "--color",
        choices=COLOR_CHOICES,
        default=None,
        help="When to colorize output (default: auto)",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Log progress to stderr")

    inputs = argparse.ArgumentParser(add_help=False)
    inputs.add_argument(
        "filenames",
        nargs="*",
        metavar="FILE",
        help="TeX document(s) to read (default: standard input)",
    )

    sub = p.add_subparsers(dest="command", required=True, metavar="COMMAND")

    hl = sub.add_parser(
        "highlight",
        aliases=["hl"],
        parents=[inputs],
        help="Highlight parts of TeX document(s) or list their spans",
    )
    hl.set_defaults(command_name="highlight")
    target = hl.add_mutually_exclusive_group()
    target.add_argument(
        "-p",
        "--part",
        choices=[part.value for part in HighlightedPart],
        default=None,
        help="Part to highlight (default: math)",
    )
    target.add_argument(
        "-t",
        "--token",
        choices=[kind.value for kind in TokenKind],
        default=None,
        help="Token kind to highlight",
    )
    hl.add_argument("--fg", metavar="COLOR", help="Foreground color (default: red)")
    hl.add_argument("--bg", metavar="COLOR", help="Background color")
    for flag in _STYLE_FLAGS:
        hl.add_argument(f"--{flag}", action="store_true", default=None, help=f"Set text {flag}")
    hl.add_argument(
        "-f",
        "--output-format",
        choices=OUTPUT_FORMATS,
        default=None,
        help="colorized in a terminal, annotated otherwise (default: auto)",
    )

    fmt = sub.add_parser(
        "format",
        aliases=["fmt"],
        parents=[inputs],
        help="Re-indent TeX document(s)",
    )
    fmt.set_defaults(command_name="format")
    fmt.add_argument(
        "--strip-comments",
        action="store_true",
        default=None,
        help="Drop comments before formatting",
    )
    fmt.add_argument(
        "--indent-width",
        type=int,
        default=None,
        metavar="N",
        help="Spaces per nesting level (default: 2)",
    )
    fmt.add_argument(
        "-i",
        "--in-place",
        action="store_true",
        help="Rewrite the files instead of printing",
    )

    chk = sub.add_parser(
        "check",
        parents=[inputs],
        help="Report unbalanced environments and math",
    )
    chk.set_defaults(command_name="check")

    tok = sub.add_parser("tokens", parents=[inputs], help="Dump the token stream")
    tok.set_defaults(command_name="tokens")

    return p


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


def load_config(config_path: Path | None, config_dir: Path) -> dict[str, Any]:
    """Load a TOML config file, returning an empty dict on missing/absent file."""
    path = config_path if config_path is not None else config_dir / CONFIG_FILENAME

    if not path.is_file():
        if config_path is not None:
            raise ConfigError(f"config file not found: {path}")
        return {}

    try:
        with open(path, "rb") as f:
            config = tomllib.load(f)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"invalid config file {path}: {exc}") from exc
    logger.debug("loaded config from %s", path)
    return config


def _section(config: dict[str, Any], name: str) -> dict[str, Any]:
    section = config.get(name, {})
    if not isinstance(section, dict):
        raise ConfigError(f"[{name}] must be a table")
    return section


def _enum_value(enum_cls: type[E], value: Any, key: str) -> E:
    try:
        return enum_cls(value)
    except ValueError:
        expected = ", ".join(member.value for member in enum_cls)
        raise ConfigError(f"invalid {key} (got {value!r}, expected one of: {expected})") from None


def _choice(value: Any, choices: tuple[str, ...], key: str) -> str:
    if value not in choices:
        raise ConfigError(f"invalid {key} (got {value!r}, expected one of: {', '.join(choices)})")
    return value


def _pick(cli_value: Any, section: dict[str, Any], key: str, default: Any) -> Any:
    """Return the CLI value if given, else the config value, else *default*."""
    if cli_value is not None:
        return cli_value
    return section.get(key, default)


def _typed(value: Any, expected: type, key: str) -> Any:
    """Reject a config value of the wrong TOML type; ``None`` passes."""
    if value is not None and (
        not isinstance(value, expected) or (expected is int and isinstance(value, bool))
    ):
        raise ConfigError(f"invalid {key} (got {value!r}, expected {expected.__name__})")
    return value


def resolve_options(args: argparse.Namespace, config_dir: Path | None = None) -> CliOptions:
    """Merge config file and CLI args into CliOptions.

    Precedence: defaults < config file < CLI flags.
    """
    config_path = Path(args.config) if args.config else None
    config = load_config(config_path, config_dir if config_dir is not None else Path.cwd())
    hl_cfg = _section(config, "highlight")
    fmt_cfg = _section(config, "format")

    color = _choice(_pick(args.color, config, "color", "auto"), COLOR_CHOICES, "color")

    command = args.command_name

    # A token kind wins over a part, unless --part is given on the command line
    part = HighlightedPart.MATH
    token: TokenKind | None = None
    output_format = "auto"
    style = HighlightStyle()
    if command == "highlight":
        cli_part, cli_token = args.part, args.token
        if cli_part is None and cli_token is None:
            cli_token = hl_cfg.get("token")
        if cli_token is not None:
            token = _enum_value(TokenKind, cli_token, "token")
        part = _enum_value(HighlightedPart, _pick(cli_part, hl_cfg, "part", "math"), "part")
        output_format = _choice(
            _pick(args.output_format, hl_cfg, "format", "auto"), OUTPUT_FORMATS, "format"
        )
        flags = {
            flag: _typed(_pick(getattr(args, flag), hl_cfg, flag, False), bool, flag)
            for flag in _STYLE_FLAGS
        }
        style = HighlightStyle(
            fg=_typed(_pick(args.fg, hl_cfg, "fg", "red"), str, "fg"),
            bg=_typed(_pick(args.bg, hl_cfg, "bg", None), str, "bg"),
            **flags,
        )
        try:
            style.to_rich()
        except ColorParseError as exc:
            raise ConfigError(f"invalid color: {exc}") from exc

    indent_width = 2
    strip_comments = False
    in_place = False
    if command == "format":
        indent_width = _typed(
            _pick(args.indent_width, fmt_cfg, "indent_width", 2), int, "indent_width"
        )
        if indent_width < 0:
            raise ConfigError(f"invalid indent width (got {indent_width!r})")
        strip_comments = _typed(
            _pick(args.strip_comments, fmt_cfg, "strip_comments", False), bool, "strip_comments"
        )
        in_place = args.in_place
        if in_place and not args.filenames:
            raise InputError("--in-place needs at least one FILE")

    return CliOptions(
        command=command,
        filenames=[Path(name) for name in args.filenames],
        color=color,
        verbose=args.verbose,
        part=part,
        token=token,
        style=style,
        output_format=output_format,
        indent_width=indent_width,
        strip_comments=strip_comments,
        in_place=in_place,
    )


# ---------------------------------------------------------------------------
# Input / output
# ---------------------------------------------------------------------------


def configure_logging(verbose: bool) -> None:
    """Send this package's log records to stderr through rich."""
    pkg_logger = logging.getLogger("untex")
    pkg_logger.handlers.clear()
    handler = RichHandler(console=Console(stderr=True), show_time=False, show_path=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    pkg_logger.addHandler(handler)
    pkg_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    pkg_logger.propagate = False


def read_sources(filenames: list[Path]) -> list[Source]:
    """Read every file, or standard input when no file is given."""
    if not filenames:
        if sys.stdin.isatty():
            print("Reading from STDIN, press [CTRL+D] when you're done.", file=sys.stderr)
        try:
            text = sys.stdin.read()
        except UnicodeDecodeError as exc:
            raise InputError(f"could not decode standard input ({exc.reason})") from exc
        logger.debug("read %d characters from stdin", len(text))
        return [Source("<stdin>", text)]

    sources: list[Source] = []
    for path in filenames:
        if not path.is_file():
            raise InputError(f"invalid filename (got '{path}', does not exist or is not a file)")
        try:
            text = path.read_bytes().decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InputError(
                f"invalid file (got '{path}', not valid UTF-8 at byte {exc.start})"
            ) from exc
        logger.debug("read %d characters from %s", len(text), path)
        sources.append(Source(str(path), text, path))
    return sources


def detect_color_system(choice: str, stream: TextIO) -> ColorSystem | None:
    """Return the color system to write with, or None for plain text."""
    if choice == "never":
        return None
    console = Console(file=stream, force_terminal=True if choice == "always" else None)
    if console.color_system is None:
        return ColorSystem.STANDARD if choice == "always" else None
    return _COLOR_SYSTEMS.get(console.color_system, ColorSystem.STANDARD)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def run_highlight(options: CliOptions, sources: list[Source], out: TextIO) -> int:
    color_system = detect_color_system(options.color, out)
    output_format = options.output_format
    if output_format == "auto":
        output_format = "colorized" if color_system is not None else "annotated"
    target = options.token.value if options.token else options.part.value
    logger.debug("highlighting %s as %s", target, output_format)

    for source in sources:
        highlighter = make_highlighter(Lexer(source.text), options.part, options.token)
        if output_format == "colorized":
            highlighter.write_colorized(source.text, out, options.style, color_system)
            continue

        # Reported spans are UTF-8 byte offsets
        offsets = byte_offsets(source.text)
        if output_format == "annotated":
            prefix = f"{source.name}:" if len(sources) > 1 else ""
            for token, span in highlighter.highlight_spanned_tokens():
                start, end = offsets[span.start], offsets[span.end]
                text = span.slice(source.text)
                out.write(f"{prefix}{start}..{end}\t{token.kind.value}\t{text!r}\n")
        else:
            highlights = [
                {
                    "start": offsets[span.start],
                    "end": offsets[span.end],
                    "kind": token.kind.value,
                    "text": span.slice(source.text),
                }
                for token, span in highlighter.highlight_spanned_tokens()
            ]
            out.write(json.dumps({"file": source.name, "highlights": highlights}) + "\n")
    return 0


def run_format(options: CliOptions, sources: list[Source], out: TextIO) -> int:
    from untex.format import format_source

    for source in sources:
        formatted = format_source(
            source.text,
            indent_width=options.indent_width,
            strip_comments=options.strip_comments,
        )
        if options.in_place and source.path is not None:
            if formatted != source.text:
                source.path.write_bytes(formatted.encode("utf-8"))
                logger.info("reformatted %s", source.path)
            else:
                logger.debug("%s already formatted", source.path)
        else:
            out.write(formatted)
    return 0


def run_check(options: CliOptions, sources: list[Source], out: TextIO) -> int:
    from untex.check import check, has_errors

    failed = False
    for source in sources:
        issues = check(source.text)
        logger.debug("%s: %d issue(s)", source.name, len(issues))
        for issue in issues:
            print(CheckError(issue, source.text).format(source.name), file=sys.stderr)
        failed = failed or has_errors(issues)
    return 1 if failed else 0


def run_tokens(options: CliOptions, sources: list[Source], out: TextIO) -> int:
    from untex.debug import dump_tokens

    for source in sources:
        dump_tokens(Lexer(source.text), source.text, file=out)
    return 0


_COMMANDS = {
    "highlight": run_highlight,
    "format": run_format,
    "check": run_check,
    "tokens": run_tokens,
}


def main(argv: list[str] | None = None) -> int:
    """CLI entry point. Returns exit code (0/1/2). Does not call sys.exit()."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        options = resolve_options(args)
    except UntexError as exc:
        print(exc.format(), file=sys.stderr)
        return 2

    configure_logging(options.verbose)

    try:
        sources = read_sources(options.filenames)
        return _COMMANDS[options.command](options, sources, sys.stdout)
    except UntexError as exc:
        print(exc.format(), file=sys.stderr)
        return 2
    except OSError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
