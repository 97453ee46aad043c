"""CLI entry point: python -m scout <command>."""
from scout.workflow import main

if __name__ == "__main__":
    main()
