"""
Package entry point.

Allows running the application via:

    python -m campusfiles

This simply forwards execution to campusfiles.cli.main().
"""

from campusfiles.cli import main

if __name__ == "__main__":
    main()
