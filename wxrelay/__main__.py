"""
Entry point for running wxrelay as a module: python -m wxrelay
"""

from wxrelay.cli.main import app

if __name__ == "__main__":
    app()
