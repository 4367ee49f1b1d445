"""
Package entry point.

Allows running the application via:

    python -m enrolldesk

This simply forwards execution to enrolldesk.cli.main().
"""

from enrolldesk.cli import main

if __name__ == "__main__":
    main()
