from __future__ import annotations

import os
import sys
from collections.abc import Sequence
from pathlib import Path

# Make sure the 'src' directory is on sys.path so 'dmelog' can be imported
REPO_ROOT = Path(__file__).resolve().parent
SRC_DIR = REPO_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from dmelog.app import main as run_cli_main


def main(argv: Sequence[str] | None = None) -> int:
    """
    Entry point for the dmelog command line.

    Parameters
    ----------
    argv:
        Command-line arguments to pass through. If None, uses sys.argv.
    """
    if argv is None:
        argv = sys.argv
    return run_cli_main(list(argv))


def _run_with_cprofile(argv: Sequence[str] | None = None, top: int = 40) -> int:
    """Run the CLI under cProfile and print the ``top`` cumulative hot spots.

    Handy for checking CSV decode cost on large logs, e.g.
    ``DMELOG_PROFILE=1 python main.py inspect big.csv``.
    """
    import cProfile
    import io
    import pstats

    profiler = cProfile.Profile()
    profiler.enable()
    try:
        return main(argv)
    finally:
        profiler.disable()
        report = io.StringIO()
        pstats.Stats(profiler, stream=report).strip_dirs().sort_stats("cumulative").print_stats(top)
        print(report.getvalue(), file=sys.stderr)


if __name__ == "__main__":
    if os.getenv("DMELOG_PROFILE", ""):
        raise SystemExit(_run_with_cprofile(sys.argv))
    raise SystemExit(main(sys.argv))
