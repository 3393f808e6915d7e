"""Package command-line entrypoint.

Enables running the resolver with:

    python -m gnews_resolver https://news.google.com/rss/articles/...

or, once installed (via the console-script declared in *pyproject.toml*), simply:

    gnews-resolver https://news.google.com/rss/articles/...
"""

from __future__ import annotations

import sys

from .main import main


def _run() -> None:  # pragma: no cover - thin wrapper
    """Invoke :pyfunc:`gnews_resolver.main.main`."""

    sys.exit(main())


if __name__ == "__main__":  # pragma: no cover
    _run()
