"""Module wrapper so running ``python -m ncomatic.cli`` matches the console script."""

from ncomatic.cli import main

if __name__ == "__main__":  # pragma: no cover
    main()
