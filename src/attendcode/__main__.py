"""Allow ``python -m attendcode``."""

from attendcode.cli import main

main()
