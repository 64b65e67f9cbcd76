"""Enables running the CLI via: python -m specgraph.cli"""

from specgraph.cli.main import cli

if __name__ == "__main__":
    cli()
