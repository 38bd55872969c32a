"""Entry point for running the provisioner as a module."""

from .provision import run

if __name__ == "__main__":
    run()
