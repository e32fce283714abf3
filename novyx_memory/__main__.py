"""
Entry point for running novyx-memory as a module: python -m novyx_memory
"""

from novyx_memory.cli.commands import app

if __name__ == "__main__":
    app()
