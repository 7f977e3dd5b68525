"""RetroForge command-line entry point (``python -m retroforge``)."""

from retroforge.cli import main

if __name__ == "__main__":
    main()
