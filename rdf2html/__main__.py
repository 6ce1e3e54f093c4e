"""
rdf2html CLI.
Usage:
    rdf2html build [-i DIR] [-o DIR] [--config PATH]   Convert all Turtle files once
    rdf2html check [-i DIR] [--config PATH]            Parse only, report broken files
    rdf2html watch [-i DIR] [-o DIR] [--config PATH]   Build, then rebuild on changes
    rdf2html init [--path DIR]                         Write a default config
"""

import argparse
import sys
from pathlib import Path

from . import __version__
from .builder import SiteBuilder, configure_logging
from .config import init_project, load_config
from .errors import ConfigError


def _builder(args) -> SiteBuilder:
    try:
        config = load_config(
            args.config,
            overrides={
                "input_dir": getattr(args, "input", None),
                "output_dir": getattr(args, "output", None),
                "workers": getattr(args, "workers", None),
                "log_level": "DEBUG" if args.verbose else None,
            },
        )
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(2)
    configure_logging(config.log_level)
    return SiteBuilder(config)


def cmd_build(args):
    builder = _builder(args)
    report = builder.build()
    print(report.summary())
    if not report.ok:
        sys.exit(1)


def cmd_check(args):
    builder = _builder(args)
    failures = builder.check()
    if not failures:
        print("All files parsed successfully.")
        return
    for source, err in sorted(failures.items()):
        print(f"{source}:{err.line}:{err.column}: {err.message}", file=sys.stderr)
    sys.exit(1)


def cmd_watch(args):
    builder = _builder(args)
    builder.watch()


def cmd_init(args):
    target = Path(args.path).resolve()
    config_path = init_project(target)
    print(f"Initialized in {target}")
    print(f"Config: {config_path}")
    print(f"Run: rdf2html build --config {config_path}")


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="rdf2html",
        description="Convert RDF Turtle files to linked HTML pages",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", default=None, help="Config file path (default: nearest rdf2html.config.json)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("build", "Convert all Turtle files once"),
        ("watch", "Build, then rebuild whenever a source changes"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("-i", "--input", default=None, help="Input directory")
        p.add_argument("-o", "--output", default=None, help="Output directory")
        p.add_argument("-j", "--workers", type=int, default=None, help="Worker threads")

    p_check = sub.add_parser("check", help="Parse all files and report errors")
    p_check.add_argument("-i", "--input", default=None, help="Input directory")

    p_init = sub.add_parser("init", help="Write a default config in a directory")
    p_init.add_argument("--path", default=".", help="Target directory")

    args = parser.parse_args(argv)

    dispatch = {
        "build": cmd_build,
        "check": cmd_check,
        "watch": cmd_watch,
        "init": cmd_init,
    }
    dispatch[args.command](args)


if __name__ == "__main__":
    main()
