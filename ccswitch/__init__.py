"""
cc-switch - provider profile switcher for Claude Code and Codex

Keeps several named provider profiles per managed application and promotes
one of them to the live configuration that the application reads.

Quick Start:
    pip install -e .
    ccswitch import claude
    ccswitch list claude
    ccswitch switch claude <provider-id>
"""

__version__ = "3.1.0"

__all__ = ["__version__"]
