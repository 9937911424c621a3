"""Allow `python -m sentence_practice`."""

from sentence_practice.cli import main

main()
