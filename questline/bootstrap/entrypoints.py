"""
bootstrap/entrypoints.py - Application entry points

Provides the offline CLI (report, sweep, graph) and the API server entry
point.
"""

from __future__ import annotations
from typing import Any, Dict, Optional
import argparse
import json
import logging
import sys

logger = logging.getLogger("bootstrap.entrypoints")


def setup_logging(level: str = "INFO", log_file: str = None, json_format: bool = False) -> None:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file path
        json_format: Use JSON format for logs
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if json_format:
        class JSONFormatter(logging.Formatter):
            def format(self, record):
                return json.dumps({
                    "timestamp": self.formatTime(record),
                    "level": record.levelname,
                    "logger": record.name,
                    "message": record.getMessage(),
                })

        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level)

    # Root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.addHandler(console_handler)

    # File handler
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        file_handler.setLevel(log_level)
        root_logger.addHandler(file_handler)

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def _load_json(path: str) -> Dict[str, Any]:
    with open(path) as f:
        return json.load(f)


def _emit(data: Any, output: Optional[str]) -> None:
    text = json.dumps(data, indent=2, default=str)
    if output:
        with open(output, "w") as f:
            f.write(text)
        logger.info(f"Wrote {output}")
    else:
        print(text)


def _cmd_report(parsed) -> int:
    from questline.bootstrap.app import load_catalog_file
    from questline.progress import format_progress

    catalog = load_catalog_file(parsed.catalog)
    document = _load_json(parsed.progress)
    report = format_progress(document, parsed.player, catalog, parsed.mode)
    _emit(report, parsed.output)
    return 0


def _cmd_sweep(parsed) -> int:
    from questline.bootstrap.app import load_catalog_file
    from questline.core.constants import DEFAULT_FACTION
    from questline.dependencies import ConsistencySweep
    from questline.progress.schemas import migrate_document
    from questline.services import parse_mode, write_mode

    catalog = load_catalog_file(parsed.catalog)
    raw = _load_json(parsed.progress)
    document = migrate_document(raw)
    mode = parse_mode(parsed.mode) or document.current_mode
    snapshot = document.mode(mode)

    results = ConsistencySweep(catalog).sweep(
        snapshot, faction=snapshot.pmc_faction or DEFAULT_FACTION, player_id=parsed.player,
    )
    current = snapshot
    for result in results:
        current = result.apply(current)

    summary = {
        "player": parsed.player,
        "mode": mode.value,
        "events": [result.event.to_dict() for result in results],
    }
    if parsed.write:
        summary["document"] = write_mode(raw, document, mode, current)
    _emit(summary, parsed.output)
    return 0


def _cmd_graph(parsed) -> int:
    from questline.bootstrap.app import load_catalog_file

    catalog = load_catalog_file(parsed.catalog)
    cycles = catalog.graph.find_cycles(limit=parsed.max_cycles)
    graph = catalog.graph.graph
    summary = {
        "quests": len(catalog),
        "edges": graph.number_of_edges(),
        "stations": len(catalog.stations),
        "maps": len(catalog.maps),
        "traders": len(catalog.traders),
        "cycles": cycles,
    }
    _emit(summary, parsed.output)
    return 1 if cycles and parsed.strict else 0


def cli_main(args: list = None) -> int:
    """
    CLI entry point.

    Args:
        args: Command line arguments (defaults to sys.argv)

    Returns:
        Exit code
    """
    parser = argparse.ArgumentParser(
        description="questline progress and catalog tools",
        prog="questline",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Log level",
    )
    parser.add_argument(
        "--log-file",
        help="Log file path",
        default=None,
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit logs as JSON",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    report = subparsers.add_parser("report", help="Print the flattened progress report")
    report.add_argument("--catalog", required=True, help="Catalog JSON file")
    report.add_argument("--progress", required=True, help="Raw progress document JSON file")
    report.add_argument("--player", required=True, help="Player id")
    report.add_argument("--mode", choices=["pvp", "pve"], default=None)
    report.add_argument("-o", "--output", default=None)

    sweep = subparsers.add_parser("sweep", help="Run the consistency sweep on a document")
    sweep.add_argument("--catalog", required=True, help="Catalog JSON file")
    sweep.add_argument("--progress", required=True, help="Raw progress document JSON file")
    sweep.add_argument("--player", required=True, help="Player id")
    sweep.add_argument("--mode", choices=["pvp", "pve"], default=None)
    sweep.add_argument("--write", action="store_true", help="Include the swept document in the output")
    sweep.add_argument("-o", "--output", default=None)

    graph = subparsers.add_parser("graph", help="Summarize the quest requirement graph")
    graph.add_argument("--catalog", required=True, help="Catalog JSON file")
    graph.add_argument("--max-cycles", type=int, default=20)
    graph.add_argument("--strict", action="store_true", help="Exit 1 when cycles exist")
    graph.add_argument("-o", "--output", default=None)

    parsed = parser.parse_args(args)

    log_level = "DEBUG" if parsed.verbose else parsed.log_level
    setup_logging(level=log_level, log_file=parsed.log_file, json_format=parsed.json_logs)

    commands = {
        "report": _cmd_report,
        "sweep": _cmd_sweep,
        "graph": _cmd_graph,
    }

    try:
        return commands[parsed.command](parsed)
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130
    except FileNotFoundError as e:
        logger.error(f"File not found: {e.filename}")
        return 2
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        return 1


def api_main(args: list = None) -> None:
    """
    API server entry point.

    Args:
        args: Command line arguments
    """
    parser = argparse.ArgumentParser(
        description="questline API Server",
        prog="questline-api",
    )

    parser.add_argument(
        "-c", "--config",
        help="Path to configuration file",
        default=None,
    )
    parser.add_argument(
        "--catalog",
        help="Catalog JSON file (overrides storage.catalog_file)",
        default=None,
    )
    parser.add_argument(
        "-p", "--port",
        type=int,
        help="API port",
        default=None,
    )
    parser.add_argument(
        "-H", "--host",
        help="API host",
        default=None,
    )
    parser.add_argument(
        "-w", "--workers",
        type=int,
        help="Number of workers",
        default=None,
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Log level",
    )

    parsed = parser.parse_args(args)

    setup_logging(level=parsed.log_level)

    try:
        from .app import QuestlineApp
        from .config import load_config

        config = load_config(parsed.config)
        if parsed.catalog:
            config.storage.catalog_file = parsed.catalog
        if parsed.port:
            config.api.port = parsed.port
        if parsed.host:
            config.api.host = parsed.host
        if parsed.workers:
            config.api.workers = parsed.workers

        app = QuestlineApp(config=config).build()
        app.run_api()

    except KeyboardInterrupt:
        print("\nShutting down...")
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        sys.exit(1)


def main():
    """Main entry point for the package."""
    if len(sys.argv) > 1 and sys.argv[1] == "api":
        api_main(sys.argv[2:])
    else:
        sys.exit(cli_main(sys.argv[1:]))


if __name__ == "__main__":
    main()
