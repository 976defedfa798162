"""Module entrypoint for ``python -m e6term``."""

from .cli import main


if __name__ == "__main__":
    main()
