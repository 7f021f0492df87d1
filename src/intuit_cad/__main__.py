"""Entry point for running intuit_cad as a module.

This allows the package to be executed as:
    python -m intuit_cad
"""

from intuit_cad.cli.main import cli

if __name__ == "__main__":
    cli()
