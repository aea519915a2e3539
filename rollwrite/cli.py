"""
Rollwrite CLI - Command-line interface for the engine.

Usage:
    rollwrite templates                        List bundled templates
    rollwrite validate <template.json>         Validate a template document
    rollwrite autoplay [--template ID | --file PATH] [--seed S] [--policy P] [--max-turns N]
    rollwrite verify <replay.json> [--template ID | --file PATH]
    rollwrite serve [--host H] [--port P]      Run the HTTP API
"""

import argparse
import json
import logging
import sys

logger = logging.getLogger("rollwrite.cli")


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Rollwrite - Roll-and-write game engine",
        prog="rollwrite",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Templates command
    subparsers.add_parser("templates", help="List bundled templates")

    # Validate command
    validate_parser = subparsers.add_parser("validate", help="Validate a template document")
    validate_parser.add_argument("template_file", help="Path to template JSON file")

    # Autoplay command
    autoplay_parser = subparsers.add_parser("autoplay", help="Play a whole game unattended")
    _add_template_arguments(autoplay_parser)
    autoplay_parser.add_argument("--seed", default="42", help="Session seed (integer or text)")
    autoplay_parser.add_argument(
        "--policy",
        default="highest",
        choices=["highest", "first", "random"],
        help="Decision policy",
    )
    autoplay_parser.add_argument("--output", "-o", help="Write the replay to this file")
    autoplay_parser.add_argument(
        "--max-turns", type=int, default=None, help="Give up after this many turns"
    )

    # Verify command
    verify_parser = subparsers.add_parser("verify", help="Check a replay regenerates exactly")
    verify_parser.add_argument("replay_file", help="Path to replay JSON file")
    _add_template_arguments(verify_parser)

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    commands = {
        "templates": cmd_templates,
        "validate": cmd_validate,
        "autoplay": cmd_autoplay,
        "verify": cmd_verify,
        "serve": cmd_serve,
    }
    if args.command not in commands:
        parser.print_help()
        sys.exit(1)
    commands[args.command](args)


def _add_template_arguments(parser):
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--template", "-t", help="Bundled template id (default: meteor-miners)")
    group.add_argument("--file", "-f", help="Path to template JSON file")


def _parse_seed(text):
    """Integers stay integers; anything else is a string seed."""
    try:
        return int(text, 0)
    except ValueError:
        return text


def _read_json(path):
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        print(f"Error: File not found: {path}")
        sys.exit(1)
    except json.JSONDecodeError as e:
        print(f"Error: {path} is not valid JSON: {e}")
        sys.exit(1)


def _load_template(args, default_id=None):
    """Compile the template named by --file or --template."""
    from .games import TemplateNotFoundError, get_compiled_template
    from .games.meteor_miners import TEMPLATE_ID
    from .spec_schema import TemplateValidationError
    from .template_compiler import compile_template

    try:
        if args.file:
            return compile_template(_read_json(args.file))
        return get_compiled_template(args.template or default_id or TEMPLATE_ID)
    except TemplateNotFoundError as e:
        print(f"Error: {e}")
        sys.exit(1)
    except TemplateValidationError as e:
        print("Template is invalid:")
        for issue in e.issues:
            print(f"  - {issue}")
        sys.exit(1)


def cmd_templates(args):
    """List bundled templates."""
    from .games import get_template, list_templates

    for template_id in list_templates():
        template = get_template(template_id)
        print(f"{template.id}  {template.name} v{template.version}  ({template.turn.limit} turns)")


def cmd_validate(args):
    """Validate a template document."""
    from .engine_core.expression import ExpressionSyntaxError
    from .spec_schema import check_template
    from .template_compiler import compile_template

    print(f"Validating: {args.template_file}")
    result = check_template(_read_json(args.template_file))

    if result.valid:
        try:
            compile_template(result.template)
        except ExpressionSyntaxError as e:
            result.valid = False
            result.errors.append(str(e))

    if result.warnings:
        print("\nWarnings:")
        for w in result.warnings:
            print(f"  - {w}")

    if result.errors:
        print("\nErrors:")
        for e in result.errors:
            print(f"  - {e}")

    if not result.valid:
        sys.exit(1)
    print(f"\nTemplate '{result.template.id}' is valid")


def cmd_autoplay(args):
    """Play a game and print its replay."""
    from .bots import get_policy
    from .session import autoplay

    template = _load_template(args)
    seed = _parse_seed(args.seed)
    policy = get_policy(args.policy, seed=seed)
    replay = autoplay(template, policy, seed=seed, max_turns=args.max_turns)

    text = replay.to_json(indent=2)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(text + "\n")
        print(f"Replay written to {args.output} (score {replay.final_score})")
    else:
        print(text)


def cmd_verify(args):
    """Regenerate a replay and compare."""
    from .engine_core.state import ReplayRecord
    from .session import verify_replay

    record = ReplayRecord.from_dict(_read_json(args.replay_file))
    template = _load_template(args, default_id=record.template_id)
    result = verify_replay(template, record)

    if result.matches:
        print(f"Replay verified: {len(record.turns)} turns, score {record.final_score}")
        return

    print("Replay does NOT match")
    if result.error:
        print(f"  - {result.error}")
    for turn in result.mismatched_turns:
        print(f"  - turn {turn} differs")
    if result.regenerated and result.regenerated.final_score != record.final_score:
        print(f"  - final score {result.regenerated.final_score} != {record.final_score}")
    sys.exit(1)


def cmd_serve(args):
    """Run the HTTP API."""
    try:
        import uvicorn
    except ImportError:
        print("Error: uvicorn not installed. Install with: pip install uvicorn")
        sys.exit(1)

    from .api.app import create_app

    logger.info("Serving on %s:%d", args.host, args.port)
    uvicorn.run(create_app(), host=args.host, port=args.port)


if __name__ == "__main__":
    main()
