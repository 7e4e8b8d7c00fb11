"""
Module entry-point that makes the package runnable with

    python -m ncomatic

The behaviour is identical to the *ncomatic-cli* console script.
"""

from ncomatic.cli import main

if __name__ == "__main__":  # pragma: no cover
    main()
