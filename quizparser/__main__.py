"""
Module entry point for: python -m quizparser

Allows running the parser directly as a module:
    python -m quizparser parse <source> [options]
    python -m quizparser grade <source> --key <key.json> [options]
    python -m quizparser serve [options]
"""

from .cli import cli


def main():
    cli()


if __name__ == "__main__":
    main()
