"""CLI entry point."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Optional, Sequence

from runalign.config import EngineConfig, format_config, load_engine_config
from runalign.details import find_frame_at, point_details
from runalign.errors import RunAlignError, ValidationError
from runalign.export import extract_range, rows_to_csv, write_frames_parquet
from runalign.io_utils import read_json, write_json_atomic, write_text_atomic
from runalign.logging_utils import (
    configure_logging,
    log_exception,
    run_with_error_handling,
)
from runalign.pipeline import ChartResult, process_request
from runalign.protocol import ChartRequest, parse_request

_LOGGER = logging.getLogger("runalign.cli")


def _load_config(args: argparse.Namespace) -> EngineConfig:
    config = load_engine_config(args.config, overrides=args.overrides)
    if not args.log_level:
        logging.getLogger("runalign").setLevel(config.log_level.upper())
    return config


def _load_request(path: str, config: EngineConfig) -> ChartRequest:
    payload = read_json(Path(path))
    return parse_request(
        payload,
        default_threshold=config.downsample_threshold,
        default_axis=config.axis,
    )


def _load_sessions(path: Optional[str]) -> dict[str, str]:
    if not path:
        return {}
    payload = read_json(Path(path))
    if not isinstance(payload, dict):
        raise ValidationError("Session name file must map session ids to names.")
    return {str(key): str(value) for key, value in payload.items()}


def _compute(args: argparse.Namespace) -> tuple[EngineConfig, ChartRequest, ChartResult]:
    config = _load_config(args)
    request = _load_request(args.request, config)
    return config, request, process_request(request, config=config)


def _emit_text(text: str, output: Optional[str]) -> None:
    if output:
        write_text_atomic(Path(output), text)
        _LOGGER.info("Wrote %s.", output)
    else:
        print(text, end="" if text.endswith("\n") else "\n")


def _cfg_handler(args: argparse.Namespace) -> None:
    print(format_config(_load_config(args)), end="")


def _merge_handler(args: argparse.Namespace) -> None:
    _, _, result = _compute(args)
    payload = result.to_payload()
    if args.output:
        write_json_atomic(Path(args.output), payload)
        _LOGGER.info("Wrote chart payload to %s.", args.output)
    else:
        print(json.dumps(payload, indent=2, sort_keys=True))
    if args.parquet:
        write_frames_parquet(result.full_merged_frames, args.parquet)


def _extract_handler(args: argparse.Namespace) -> None:
    _, request, result = _compute(args)
    selection = request.selection()
    table = extract_range(
        result.full_merged_frames,
        request.runs,
        selection.x_axis,
        selection.metric_keys,
        args.x_min,
        args.x_max,
        session_names=_load_sessions(args.sessions),
    )
    _emit_text(rows_to_csv(table), args.output)


def _details_handler(args: argparse.Namespace) -> None:
    _, request, result = _compute(args)
    frame = find_frame_at(result.full_merged_frames, args.x)
    details = point_details(
        frame,
        request.runs,
        selected_run_ids=request.selection().run_ids,
        session_names=_load_sessions(args.sessions),
    )
    payload: dict[str, Any] = {
        "headers": [{"key": key, "label": label} for key, label in details.headers],
        "rows": details.rows,
        "runIds": details.run_ids,
        "pointDistance": details.distance,
        "pointTimestamp": details.timestamp,
    }
    _emit_text(json.dumps(payload, indent=2, sort_keys=True), args.output)


def _add_config_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        default=None,
        help="Engine config YAML file.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Override an engine config value (repeatable).",
    )


def _add_request_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("request", help="Chart request JSON file.")
    parser.add_argument("--output", "-o", default=None, help="Output file path.")
    _add_config_arguments(parser)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="runalign",
        description="Align, merge and downsample benchmark runs for charting.",
    )
    parser.add_argument(
        "--traceback",
        action="store_true",
        help="Show full tracebacks on errors.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: log_level from the engine config).",
    )
    subparsers = parser.add_subparsers(dest="command")

    cfg_parser = subparsers.add_parser(
        "cfg",
        help="Print the resolved engine config.",
        description="Print the resolved engine config.",
    )
    _add_config_arguments(cfg_parser)
    cfg_parser.set_defaults(handler=_cfg_handler)

    merge_parser = subparsers.add_parser(
        "merge",
        help="Compute the chart payload for a request.",
        description="Compute the chart payload for a request.",
    )
    _add_request_arguments(merge_parser)
    merge_parser.add_argument(
        "--parquet",
        default=None,
        help="Also write the full merged frames to this Parquet file.",
    )
    merge_parser.set_defaults(handler=_merge_handler)

    extract_parser = subparsers.add_parser(
        "extract",
        help="Extract merged rows inside an x range as CSV.",
        description="Extract merged rows inside an x range as CSV.",
    )
    _add_request_arguments(extract_parser)
    extract_parser.add_argument("--x-min", type=float, required=True)
    extract_parser.add_argument("--x-max", type=float, required=True)
    extract_parser.add_argument(
        "--sessions",
        default=None,
        help="JSON file mapping session ids to display names.",
    )
    extract_parser.set_defaults(handler=_extract_handler)

    details_parser = subparsers.add_parser(
        "details",
        help="Compare all runs at the frame closest to an x value.",
        description="Compare all runs at the frame closest to an x value.",
    )
    _add_request_arguments(details_parser)
    details_parser.add_argument("--x", type=float, required=True)
    details_parser.add_argument(
        "--sessions",
        default=None,
        help="JSON file mapping session ids to display names.",
    )
    details_parser.set_defaults(handler=_details_handler)
    return parser


def _cli_main(
    *,
    cli_logger: logging.Logger,
    argv: Optional[Sequence[str]] = None,
) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "command", None):
        parser.print_help()
        raise SystemExit(2)
    if args.log_level:
        configure_logging(args.log_level, force=True)
    try:
        args.handler(args)
    except RunAlignError as exc:
        log_exception(cli_logger, exc, show_traceback=args.traceback)
        raise SystemExit(1) from None


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Entry point with standard logging/error handling."""
    logger = configure_logging()
    run_with_error_handling(_cli_main, logger=logger, cli_logger=logger, argv=argv)


if __name__ == "__main__":
    main()
