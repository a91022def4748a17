"""Allow running as ``python -m mediabroker``."""

from mediabroker.cli import main

main()
