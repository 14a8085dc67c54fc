"""
Entry point for running pocketbase-bin as a module.

Usage: python -m pocketbase_bin [command] [options]
"""

from pocketbase_bin.cli.parser import main

if __name__ == "__main__":
    main()
