"""Command-line entry point for dmelog.

This module wires up argument parsing and logging, builds the acquisition
backend and :class:`~dmelog.core.session_controller.SessionController`, and
runs the Qt event loop for recording sessions. All launches, whether
through ``python main.py`` or the ``dmelog`` console script, flow through
``main()`` here.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Sequence, Tuple

import numpy as np
from PySide6.QtCore import QCoreApplication, QLoggingCategory, QTimer

from .analysis.chart import default_selected_parameters, prepare_chart, tooltip_rows
from .analysis.normalize import ScaleMode
from .catalog.parameters import DmeProfile, is_elm_supported, parameters_for
from .catalog.selection import ParameterSelection
from .config.app_config import AppPaths
from .config.runtime import DatalogConfig, load_config
from .core.models import ConnectionMode, SessionConfig
from .core.session_controller import SessionController
from .dataio.csv_codec import CsvTable
from .dataio.log_loader import load_csv, merge_tables
from .errors import DatalogError
from .remote.log_store import LocalLogStore, format_log_meta, load_saved_log
from .remote.simulator import SimulatorBackend

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
LOG_FILE_NAME = "dmelog.log"

_file_handler: logging.FileHandler | None = None


def configure_logging(level: str = "INFO", log_dir: Path | None = None) -> None:
    """
    Log to stderr and, when ``log_dir`` is given, to ``<log_dir>/dmelog.log``.

    Calling again replaces the file handler from the previous call.
    """
    global _file_handler

    numeric = getattr(logging, str(level).upper(), None)
    if not isinstance(numeric, int):
        numeric = logging.INFO
    logging.basicConfig(level=numeric, format=LOG_FORMAT)

    root = logging.getLogger()
    if _file_handler is not None:
        root.removeHandler(_file_handler)
        _file_handler.close()
        _file_handler = None
    if log_dir is None:
        return
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_dir / LOG_FILE_NAME, encoding="utf-8")
    except OSError:
        logger.warning("Cannot write log file under %s", log_dir, exc_info=True)
        return
    handler.setLevel(numeric)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    _file_handler = handler


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dmelog",
        description="Record, export, and inspect BMW DME datalog sessions",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (DEBUG, INFO, WARNING, ERROR; default: INFO)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML config file (default: <data root>/dmelog.yaml)",
    )
    parser.add_argument(
        "--data-root",
        type=Path,
        default=None,
        help="Directory for exports and saved logs (default: ~/.dmelog)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    record = sub.add_parser("record", help="Record a datalog session and export it as CSV")
    record.add_argument(
        "--duration",
        type=float,
        default=10.0,
        help="Session length in seconds (default: 10)",
    )
    record.add_argument(
        "--mode",
        choices=[mode.value for mode in ConnectionMode],
        default=None,
        help="Connection mode (default: from config, normally simulator)",
    )
    record.add_argument(
        "--profile",
        default=None,
        help="DME profile: MEVD17.2, MEVD17.2.G, or MSD80/81",
    )
    record.add_argument("--port", default=None, help="Cable port name (hardware mode)")
    record.add_argument("--baud", type=int, default=None, help="Cable baud rate")
    record.add_argument(
        "--channel",
        dest="channels",
        action="append",
        default=None,
        help="Channel key to log; repeat for several (default: profile defaults)",
    )
    record.add_argument(
        "--out",
        type=Path,
        default=None,
        help="Export directory (default: <data root>/exports)",
    )
    record.add_argument(
        "--save",
        action="store_true",
        help="Also save the session to the local log store",
    )

    inspect = sub.add_parser("inspect", help="Decode CSV files and summarize their channels")
    inspect.add_argument("files", type=Path, nargs="+", help="CSV files (several are merged)")
    inspect.add_argument(
        "--select",
        action="append",
        default=None,
        help="Channel to show in the chart preview; repeat for several",
    )
    inspect.add_argument(
        "--scale",
        choices=[mode.value for mode in ScaleMode],
        default=None,
        help="Chart scale mode (default: from config)",
    )

    channels = sub.add_parser("channels", help="List the channels a DME profile can log")
    channels.add_argument("--profile", default=None, help="DME profile (default: from config)")

    logs = sub.add_parser("logs", help="List saved logs")
    logs.add_argument("--load", metavar="LOG_ID", default=None, help="Decode one saved log")

    ports = sub.add_parser("ports", help="List candidate cable ports")
    ports.add_argument("--mode", choices=[mode.value for mode in ConnectionMode], default=None)

    dtcs = sub.add_parser("dtcs", help="Read (or clear) diagnostic trouble codes")
    dtcs.add_argument("--clear", action="store_true", help="Clear DTCs instead of reading them")
    return parser


def _parse_cli_args(argv: List[str]) -> Tuple[argparse.Namespace, List[str]]:
    parser = _build_arg_parser()
    args, qt_args = parser.parse_known_args(argv[1:])
    qt_argv = [argv[0], *qt_args]
    return args, qt_argv


def create_controller(
    config: DatalogConfig,
    argv: List[str] | None = None,
) -> Tuple[QCoreApplication, SessionController]:
    """
    Create the QCoreApplication and a controller on a simulator backend.

    Hardware sessions need a cable backend implementing
    :class:`~dmelog.remote.backend.AcquisitionBackend`; the simulator rejects
    hardware mode at ``start``.
    """
    app = QCoreApplication.instance() or QCoreApplication(argv or [sys.argv[0]])
    QLoggingCategory.setFilterRules("qt.core.qobject.connect=false")
    backend = SimulatorBackend(interval_s=config.simulator_interval_ms / 1000.0)
    controller = SessionController(backend, config)
    return app, controller


def _load_runtime_config(args: argparse.Namespace, paths: AppPaths) -> DatalogConfig:
    path = args.config if args.config is not None else paths.config_file
    return load_config(path)


# ---------------------------------------------------------------------- commands
def _cmd_record(args: argparse.Namespace, paths: AppPaths, qt_argv: List[str]) -> int:
    config = _load_runtime_config(args, paths)
    if args.mode:
        config.connection_mode = args.mode
    if args.profile:
        config.profile = args.profile
    if args.baud:
        config.baud_rate = args.baud
    config = config.sanitized()

    try:
        profile = DmeProfile.parse(config.profile)
        selection = ParameterSelection(profile, keys=args.channels)
    except (DatalogError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    app, controller = create_controller(config, qt_argv)
    session = SessionConfig(
        channels=selection.keys(),
        connection_mode=ConnectionMode.parse(config.connection_mode),
        profile=profile,
        port_name=args.port,
        baud_rate=config.baud_rate,
    )
    result = controller.start(session)
    if not result:
        print(f"error: {result.error}", file=sys.stderr)
        return 1

    controller.session_stopped.connect(app.quit)
    QTimer.singleShot(int(max(0.0, args.duration) * 1000), controller.stop)
    app.exec()
    controller.shutdown()

    snapshot = controller.snapshot()
    print(
        f"Recorded {snapshot.sample_count} samples, {snapshot.total_bytes} bytes "
        f"({snapshot.protocol_label})"
    )
    export = controller.export_csv(directory=args.out or paths.exports)
    if not export:
        print(f"Export skipped: {export.error}", file=sys.stderr)
        return 1
    print(f"Exported {export.sample_count} samples to {export.path}")

    if args.save:
        saved = controller.save_log(LocalLogStore(paths.saved_logs))
        if not saved:
            print(f"Save failed: {saved.error}", file=sys.stderr)
            return 1
        print(f"Saved log {saved.log_id}")
    return 0


def _print_table(table: CsvTable, selected: Sequence[str] | None, scale: ScaleMode) -> None:
    time_label = table.time_column or "row index x 100 ms"
    print(f"{table.file_name}: {table.row_count} rows, delimiter {table.delimiter!r}, time from {time_label}")
    for header in table.numeric_headers:
        column = table.column(header)
        count = int(np.count_nonzero(~np.isnan(column)))
        span = "-" if count == 0 else f"{np.nanmin(column):.3f} .. {np.nanmax(column):.3f}"
        print(f"  {header:<28} n={count:<6} {span}")
    for header in table.non_numeric_headers:
        print(f"  {header:<28} (text)")

    parameters = list(selected) if selected else default_selected_parameters(table.numeric_headers)
    prepared = prepare_chart(table, parameters, scale)
    if not prepared:
        return
    print(f"Last point ({scale.value} scale):")
    for row in tooltip_rows(prepared[-1], parameters, table.numeric_headers):
        print(f"  {row.label}: {row.value}  [{row.color}]")


def _cmd_inspect(args: argparse.Namespace, paths: AppPaths) -> int:
    config = _load_runtime_config(args, paths)
    scale = ScaleMode.parse(args.scale or config.scale_mode)
    tables: List[CsvTable] = []
    for path in args.files:
        try:
            tables.append(load_csv(path))
        except (OSError, DatalogError) as exc:
            print(f"error: {path}: {exc}", file=sys.stderr)
            return 1
    table = tables[0] if len(tables) == 1 else merge_tables(tables, file_name=f"{len(tables)} files")
    _print_table(table, args.select, scale)
    return 0


def _cmd_logs(args: argparse.Namespace, paths: AppPaths) -> int:
    store = LocalLogStore(paths.saved_logs)
    try:
        if args.load:
            table = load_saved_log(store, args.load)
            config = _load_runtime_config(args, paths)
            _print_table(table, None, ScaleMode.parse(config.scale_mode))
            return 0
        summaries = store.list_my_logs()
    except DatalogError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    if not summaries:
        print("No saved logs found for this account.")
        return 0
    for summary in summaries:
        print(f"{summary.log_id}  {summary.file_name}")
        print(f"    {format_log_meta(summary)}")
    return 0


def _cmd_channels(args: argparse.Namespace, paths: AppPaths) -> int:
    config = _load_runtime_config(args, paths).sanitized()
    try:
        profile = DmeProfile.parse(args.profile or config.profile)
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    print(f"{profile.value}:")
    for param in parameters_for(profile):
        source = "ELM" if is_elm_supported(param.key) else "BMW-specific"
        print(f"  {param.key:<24} {param.label} ({param.unit})  [{source}]")
    return 0


def _cmd_ports(args: argparse.Namespace, paths: AppPaths, qt_argv: List[str]) -> int:
    config = _load_runtime_config(args, paths)
    _app, controller = create_controller(config, qt_argv)
    result = controller.list_ports(args.mode)
    if not result:
        print(f"error: {result.error}", file=sys.stderr)
        return 1
    if not result.value:
        print("No K+DCAN cable ports detected.")
    for port in result.value:
        print(f"{port.port_name}\t{port.port_type}")
    return 0


def _cmd_dtcs(args: argparse.Namespace, paths: AppPaths, qt_argv: List[str]) -> int:
    config = _load_runtime_config(args, paths)
    _app, controller = create_controller(config, qt_argv)
    if args.clear:
        result = controller.clear_dtcs()
    else:
        result = controller.read_dtcs()
    if not result:
        print(f"error: {result.error}", file=sys.stderr)
        return 1
    if args.clear:
        print("DTCs cleared.")
        return 0
    for record in result.value:
        print(f"{record.code}  {record.severity:<6} {record.status:<8} {record.description}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    raw_argv = list(argv) if argv is not None else list(sys.argv)
    args, qt_argv = _parse_cli_args(raw_argv)
    paths = AppPaths(data_root=args.data_root)
    configure_logging(args.log_level, paths.logs)
    logger.debug("Using data root %s", paths.data_root)

    if args.command == "record":
        return _cmd_record(args, paths, qt_argv)
    if args.command == "inspect":
        return _cmd_inspect(args, paths)
    if args.command == "channels":
        return _cmd_channels(args, paths)
    if args.command == "logs":
        return _cmd_logs(args, paths)
    if args.command == "ports":
        return _cmd_ports(args, paths, qt_argv)
    if args.command == "dtcs":
        return _cmd_dtcs(args, paths, qt_argv)
    raise SystemExit(f"unknown command: {args.command}")


if __name__ == "__main__":
    raise SystemExit(main())
