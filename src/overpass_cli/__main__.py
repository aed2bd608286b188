"""
Entry point for running Overpass CLI as a module.

This allows users to run the CLI using:
    python -m overpass_cli [options] [QUERY]
"""

from overpass_cli.cli.app import main

if __name__ == "__main__":
    main()
