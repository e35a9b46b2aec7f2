"""Allow running cc-switch via ``python -m ccswitch``."""

from ccswitch.cli.cli import main

if __name__ == "__main__":
    main()
