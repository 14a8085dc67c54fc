"""
Entry point for running the pocketbase-bin CLI as a module.

Usage: python -m pocketbase_bin.cli [command] [options]
"""

from .parser import main

if __name__ == "__main__":
    main()
