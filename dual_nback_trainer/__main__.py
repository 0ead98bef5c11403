from __future__ import annotations

import sys
from pathlib import Path


def _ensure_repo_root_on_path() -> None:
    """Put the repository root on ``sys.path`` when run as a plain script."""
    pkg_dir = Path(__file__).resolve().parent
    repo_root_str = str(pkg_dir.parent)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


try:
    # Works when executed as a module: python -m dual_nback_trainer
    from .app import run  # type: ignore[attr-defined]
    from .logger import setup_logging  # type: ignore[attr-defined]
except ImportError:
    # Works when executed as a script (python dual_nback_trainer/__main__.py)
    _ensure_repo_root_on_path()
    from dual_nback_trainer.app import run  # type: ignore[attr-defined]
    from dual_nback_trainer.logger import setup_logging  # type: ignore[attr-defined]


def main() -> int:
    """Entry point for running the trainer from the command line."""
    setup_logging()
    return run()


if __name__ == "__main__":
    raise SystemExit(main())
