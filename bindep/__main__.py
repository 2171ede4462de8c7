"""
Entry point for running the bindep CLI as a module.

Usage: python -m bindep [command] [options]
"""

from bindep.cli.parser import main

if __name__ == "__main__":
    main()
